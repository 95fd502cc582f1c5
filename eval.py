#!/usr/bin/env python
"""
Evaluation script for scanread recognition results.

Computes metrics on saved result JSON files and, when ground-truth text is
available, character and word error rates.

Usage:
    python eval.py --input <result.json> [--expected <ground_truth.txt>]
    python eval.py --results-dir <dir> --expected-dir <dir> --report <report.json>
"""

import argparse
import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
import sys

from rapidfuzz.distance import Levenshtein

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 0.65
HIGH_CONFIDENCE = 0.80


@dataclass
class EvaluationMetrics:
    """Evaluation metrics for one recognized page."""
    # Overall metrics
    confidence: float = 0.0
    processing_time_ms: float = 0.0
    skew_angle: float = 0.0

    # Line metrics
    lines_total: int = 0
    lines_high_confidence: int = 0
    lines_low_confidence: int = 0
    line_confidence_avg: float = 0.0

    # Pass metrics
    passes_total: int = 0
    corrections_total: int = 0

    # Accuracy (if ground truth provided)
    cer: Optional[float] = None
    wer: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_result(json_path: Path) -> Dict[str, Any]:
    """Load a result JSON file."""
    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_ground_truth(text_path: Path) -> str:
    with open(text_path, 'r', encoding='utf-8') as f:
        return f.read().strip()


def evaluate_result(result: Dict[str, Any]) -> EvaluationMetrics:
    """Evaluate a single recognition result."""
    metrics = EvaluationMetrics(
        confidence=result.get("confidence", 0.0),
        processing_time_ms=result.get("processing_time_ms", 0.0),
        skew_angle=result.get("skew_angle", 0.0),
        passes_total=len(result.get("passes", [])),
        corrections_total=len(result.get("corrections", [])),
    )

    line_confidences = []
    for line in result.get("lines", []):
        confidence = line.get("confidence", 0.0)
        line_confidences.append(confidence)

        if confidence >= HIGH_CONFIDENCE:
            metrics.lines_high_confidence += 1
        elif confidence < LOW_CONFIDENCE:
            metrics.lines_low_confidence += 1

    metrics.lines_total = len(line_confidences)
    if line_confidences:
        metrics.line_confidence_avg = sum(line_confidences) / len(line_confidences)

    return metrics


def character_error_rate(expected: str, actual: str) -> float:
    """Edit distance between the texts divided by the expected length."""
    if not expected:
        return 0.0 if not actual else 1.0
    return Levenshtein.distance(expected, actual) / len(expected)


def word_error_rate(expected: str, actual: str) -> float:
    """Word-level edit distance divided by the expected word count."""
    expected_words = expected.split()
    actual_words = actual.split()
    if not expected_words:
        return 0.0 if not actual_words else 1.0
    return Levenshtein.distance(expected_words, actual_words) / len(expected_words)


def evaluate_against_expected(result: Dict[str, Any], expected_text: str) -> EvaluationMetrics:
    """Evaluate a result against its ground-truth text."""
    metrics = evaluate_result(result)

    actual_text = result.get("text", "")
    metrics.cer = character_error_rate(expected_text, actual_text)
    metrics.wer = word_error_rate(expected_text, actual_text)

    return metrics


def print_metrics(metrics: EvaluationMetrics, name: str = "Page"):
    """Print metrics in a formatted way."""
    print(f"\n{'='*60}")
    print(f"Evaluation Results: {name}")
    print('='*60)

    print("\n📊 Overall Metrics:")
    print(f"  Confidence: {metrics.confidence:.1%}")
    print(f"  Skew Angle: {metrics.skew_angle:.1f} deg")
    print(f"  Processing Time: {metrics.processing_time_ms:.0f}ms")

    print("\n📝 Lines:")
    print(f"  Total: {metrics.lines_total}")
    print(f"  High Confidence (≥{HIGH_CONFIDENCE:.0%}): {metrics.lines_high_confidence}")
    print(f"  Low Confidence (<{LOW_CONFIDENCE:.0%}): {metrics.lines_low_confidence}")
    print(f"  Average Confidence: {metrics.line_confidence_avg:.1%}")

    print("\n🔁 Passes:")
    print(f"  Successful Passes: {metrics.passes_total}")
    print(f"  Corrections Applied: {metrics.corrections_total}")

    if metrics.cer is not None:
        print("\n🎯 Accuracy (vs ground truth):")
        print(f"  Character Error Rate: {metrics.cer:.1%}")
        print(f"  Word Error Rate: {metrics.wer:.1%}")

    print('='*60)


def evaluate_directory(
    results_dir: Path,
    expected_dir: Optional[Path] = None
) -> Dict[str, EvaluationMetrics]:
    """Evaluate all results in a directory; ground truth is <stem>.txt."""
    results = {}

    for json_file in sorted(results_dir.glob("*.json")):
        if json_file.name == "report.json":
            continue

        result = load_result(json_file)

        expected_file = expected_dir / f"{json_file.stem}.txt" if expected_dir else None
        if expected_file is not None and expected_file.exists():
            metrics = evaluate_against_expected(result, load_ground_truth(expected_file))
        else:
            metrics = evaluate_result(result)

        results[json_file.stem] = metrics

    return results


def generate_report(
    results: Dict[str, EvaluationMetrics]
) -> Dict[str, Any]:
    """Generate a summary report from multiple evaluations."""
    if not results:
        return {"error": "No results to report"}

    total_pages = len(results)
    avg_confidence = sum(m.confidence for m in results.values()) / total_pages

    scored = [m for m in results.values() if m.cer is not None]

    return {
        "summary": {
            "pages_evaluated": total_pages,
            "average_confidence": round(avg_confidence, 3),
            "total_lines": sum(m.lines_total for m in results.values()),
            "total_corrections": sum(m.corrections_total for m in results.values()),
            "pages_with_ground_truth": len(scored),
            "average_cer": round(sum(m.cer for m in scored) / len(scored), 4) if scored else None,
            "average_wer": round(sum(m.wer for m in scored) / len(scored), 4) if scored else None,
        },
        "individual_results": {
            name: metrics.to_dict()
            for name, metrics in results.items()
        }
    }


def main():
    parser = argparse.ArgumentParser(
        description="Evaluate scanread recognition outputs"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="Path to a result JSON file"
    )

    parser.add_argument(
        "--expected", "-e",
        type=Path,
        help="Path to ground-truth text for comparison"
    )

    parser.add_argument(
        "--results-dir",
        type=Path,
        help="Directory containing multiple result JSON files"
    )

    parser.add_argument(
        "--expected-dir",
        type=Path,
        help="Directory containing <stem>.txt ground-truth files"
    )

    parser.add_argument(
        "--report", "-r",
        type=Path,
        help="Output path for evaluation report JSON"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress printed output"
    )

    args = parser.parse_args()

    results = {}

    # Evaluate single file
    if args.input:
        if not args.input.exists():
            logger.error(f"Input file not found: {args.input}")
            sys.exit(1)

        result = load_result(args.input)

        if args.expected and args.expected.exists():
            metrics = evaluate_against_expected(result, load_ground_truth(args.expected))
        else:
            metrics = evaluate_result(result)

        results[args.input.stem] = metrics

        if not args.quiet:
            print_metrics(metrics, args.input.name)

    # Evaluate directory
    elif args.results_dir:
        if not args.results_dir.is_dir():
            logger.error(f"Results directory not found: {args.results_dir}")
            sys.exit(1)

        results = evaluate_directory(args.results_dir, args.expected_dir)

        if not args.quiet:
            for name, metrics in results.items():
                print_metrics(metrics, name)

    else:
        parser.print_help()
        sys.exit(1)

    # Generate and save report
    if args.report and results:
        report = generate_report(results)

        with open(args.report, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Report saved to: {args.report}")

        if not args.quiet:
            print(f"\n📝 Report saved to: {args.report}")
            print("\nSummary:")
            for key, value in report["summary"].items():
                print(f"  {key}: {value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
