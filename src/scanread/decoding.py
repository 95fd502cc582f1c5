"""
Greedy CTC decoding of per-timestep class probabilities.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence
import numpy as np

logger = logging.getLogger(__name__)

BLANK_TOKEN = "<blank>"

# Index 0 is the blank; the rest are the printable ASCII characters
DEFAULT_VOCABULARY = tuple(
    [BLANK_TOKEN]
    + list(" !\"#$%&'()*+,-./0123456789:;<=>?@ABCDEFGHIJKLMNOPQRSTUVWXYZ[\\]^_`abcdefghijklmnopqrstuvwxyz{|}~")
)


@dataclass
class DecodedSequence:
    """Decoder output."""
    text: str
    confidence: float
    char_confidences: List[float] = field(default_factory=list)


def decode_ctc(
    probabilities,
    vocabulary: Sequence[str] = DEFAULT_VOCABULARY,
    blank_index: int = 0
) -> DecodedSequence:
    """
    Decode a (timesteps x vocabulary) probability matrix.

    At each timestep the arg-max class is taken. Its character is emitted
    unless it is the blank or equal to the previous timestep's arg-max, so
    repeated characters must be separated by a blank to survive.

    Args:
        probabilities: 2-D array-like of class probabilities
        vocabulary: Character for each class index
        blank_index: Index of the blank class

    Returns:
        DecodedSequence; confidence is the mean arg-max probability of the
        emitted characters, 0.0 when nothing is emitted
    """
    matrix = np.asarray(probabilities, dtype=np.float64)
    if matrix.size == 0:
        return DecodedSequence(text="", confidence=0.0)
    if matrix.ndim != 2:
        raise ValueError(f"Expected 2-D probability matrix, got shape {matrix.shape}")
    if matrix.shape[1] != len(vocabulary):
        raise ValueError(
            f"Matrix has {matrix.shape[1]} classes but vocabulary has {len(vocabulary)}"
        )

    best = np.argmax(matrix, axis=1)
    best_probs = matrix[np.arange(len(best)), best]

    chars = []
    char_confidences = []
    previous = None

    for index, prob in zip(best.tolist(), best_probs.tolist()):
        if index != blank_index and index != previous:
            chars.append(vocabulary[index])
            char_confidences.append(prob)
        previous = index

    confidence = float(np.mean(char_confidences)) if char_confidences else 0.0
    return DecodedSequence(
        text="".join(chars),
        confidence=confidence,
        char_confidences=char_confidences
    )
