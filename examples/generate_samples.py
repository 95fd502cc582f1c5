#!/usr/bin/env python
"""
Generate synthetic scanned pages for testing the scanread pipeline.

This script creates sample page images with:
- Clean printed text
- Skewed pages (as from a crooked scan)
- Noisy, low-contrast pages
- A handwritten-style prescription for medical mode

Each image gets a ground-truth <name>.txt file that eval.py can compare
recognition results against.

Usage:
    python examples/generate_samples.py
    scanread --input examples/sample_pages --output ./output
    python eval.py --results-dir ./output --expected-dir examples/expected_outputs
"""

import numpy as np
from pathlib import Path

PAGE_WIDTH = 850
PAGE_HEIGHT = 600


def draw_lines(img, lines, color=(0, 0, 0), scale=0.7, thickness=1, start_y=80, spacing=40):
    """Draw text lines top to bottom."""
    import cv2

    y = start_y
    for line in lines:
        cv2.putText(img, line, (50, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness)
        y += spacing
    return img


def rotate_page(img, angle: float):
    """Rotate a page about its center, filling the exposed corners with white."""
    import cv2

    height, width = img.shape[:2]
    matrix = cv2.getRotationMatrix2D((width / 2, height / 2), angle, 1.0)
    return cv2.warpAffine(
        img, matrix, (width, height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(255, 255, 255)
    )


def add_noise(img, sigma: float = 8.0, speckle: float = 0.002, seed: int = 0):
    """Add Gaussian noise and salt-and-pepper specks to simulate scan artifacts."""
    rng = np.random.default_rng(seed)
    noisy = img.astype(np.int16) + rng.normal(0, sigma, img.shape).astype(np.int16)
    mask = rng.random(img.shape[:2]) < speckle
    noisy[mask] = 0
    return np.clip(noisy, 0, 255).astype(np.uint8)


def create_clean_page():
    """Create a clean page with printed text."""
    lines = [
        "The quick brown fox jumps over the lazy dog.",
        "Scanned pages are normalized before recognition.",
        "Each line is read several times and merged.",
        "Total due: 42 dollars",
    ]
    img = np.ones((PAGE_HEIGHT, PAGE_WIDTH, 3), dtype=np.uint8) * 255
    return draw_lines(img, lines), lines


def create_skewed_page():
    """Create the clean page rotated by a few degrees."""
    img, lines = create_clean_page()
    return rotate_page(img, 4.0), lines


def create_low_contrast_page():
    """Create a gray, noisy page with dark gray text."""
    lines = [
        "This page has low contrast to test enhancement.",
        "The text appears gray on a gray background.",
        "CLAHE and contrast variants should recover it.",
    ]
    # Light gray background, dark gray text
    img = np.ones((PAGE_HEIGHT, PAGE_WIDTH, 3), dtype=np.uint8) * 180
    img = draw_lines(img, lines, color=(120, 120, 120))
    return add_noise(img, sigma=5.0, seed=1), lines


def create_prescription_page():
    """Create a prescription with medical terms and abbreviations."""
    lines = [
        "Patient: John Smith",
        "Rx: Metformin 500 mg PO BID",
        "Lisinopril 10 mg daily",
        "Diagnosis: hypertension",
    ]
    img = np.ones((PAGE_HEIGHT, PAGE_WIDTH, 3), dtype=np.uint8) * 250
    img = draw_lines(img, lines, color=(40, 40, 90), scale=0.8, thickness=2, spacing=50)
    img = rotate_page(img, -2.0)
    return add_noise(img, seed=2), lines


def main():
    import cv2

    # Create output directories
    samples_dir = Path(__file__).parent / "sample_pages"
    expected_dir = Path(__file__).parent / "expected_outputs"
    samples_dir.mkdir(exist_ok=True)
    expected_dir.mkdir(exist_ok=True)

    samples = [
        ("sample_clean", create_clean_page()),
        ("sample_skewed", create_skewed_page()),
        ("sample_low_contrast", create_low_contrast_page()),
        ("sample_prescription", create_prescription_page()),
    ]

    for name, (img, lines) in samples:
        img_path = samples_dir / f"{name}.png"
        cv2.imwrite(str(img_path), img)
        print(f"Created: {img_path}")

        expected_path = expected_dir / f"{name}.txt"
        expected_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        print(f"Created: {expected_path}")

        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        print(f"  Mean intensity: {np.mean(gray):.1f}, contrast range: {np.max(gray) - np.min(gray)}")

    print("\nSample generation complete!")
    print("Use --medical when recognizing sample_prescription.png.")


if __name__ == "__main__":
    main()
