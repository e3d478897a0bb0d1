"""Shared fakes for pipeline tests.

The fake networks are deterministic functions of their input tensor so the
whole pipeline can run without model files.
"""

import time

import numpy as np
import pytest

from rapidocr_lite.postprocess import CTCLabelDecode
from rapidocr_lite.text_classifier import TextClassifier
from rapidocr_lite.text_detector import TextDetector
from rapidocr_lite.text_recognizer import TextRecognizer


class ThresholdDetectorEngine:
    """Marks dark pixels of the normalized input as text."""

    def __init__(self, prob: float = 0.9):
        self.prob = prob
        self.calls = 0

    def __call__(self, tensor):
        self.calls += 1
        # normalized white is about 2.25 in channel 0, black about -2.1
        mask = tensor[0, 0] < 1.0
        return (mask.astype(np.float32) * self.prob)[np.newaxis, np.newaxis]


class FixedClassifierEngine:
    def __init__(self, scores=(0.9, 0.1)):
        self.scores = np.array([scores], dtype=np.float32)

    def __call__(self, tensor):
        return self.scores


class FixedTextEngine:
    """Emits the same index sequence for every crop."""

    def __init__(self, indices, vocab_size):
        self.indices = indices
        self.vocab_size = vocab_size

    def __call__(self, tensor):
        preds = np.zeros((1, len(self.indices), self.vocab_size), dtype=np.float32)
        for t, idx in enumerate(self.indices):
            preds[0, t, idx] = 0.9
        return preds


class DarknessTextEngine:
    """Reads the typical ink level of the crop as one of 'a', 'b', 'c'.

    The ink level is the median of the dark pixels, which the resize
    overshoot at band edges does not move.

    Crops of the darkest band take the longest so that completion order
    under a thread pool differs from submission order.
    """

    def __init__(self, vocab_size=5):
        self.vocab_size = vocab_size

    def __call__(self, tensor):
        # zero is the right-hand padding of short crops
        ink = tensor[(tensor < 0.5) & (tensor != 0)]
        level = float(np.median(ink)) if ink.size else 1.0
        if level < -0.8:
            idx = 1
            time.sleep(0.05)
        elif level < -0.3:
            idx = 2
        else:
            idx = 3
        preds = np.zeros((1, 2, self.vocab_size), dtype=np.float32)
        preds[0, 0, idx] = 0.95
        preds[0, 1, 0] = 0.95
        return preds


class FailingEngine:
    def __call__(self, tensor):
        raise RuntimeError("inference failed")


class ClosableEngine(FixedClassifierEngine):
    closed = False

    def close(self):
        self.closed = True


def banded_image(bands, width=300, height=360):
    """White image with full-width horizontal bands: [(top, bottom, gray), ...]."""
    img = np.full((height, width, 3), 255, dtype=np.uint8)
    for top, bottom, gray in bands:
        img[top:bottom, 20:width - 20] = gray
    return img


@pytest.fixture
def decoder():
    return CTCLabelDecode.from_lines(["a", "b", "c"])


@pytest.fixture
def detector():
    return TextDetector(ThresholdDetectorEngine())


@pytest.fixture
def classifier():
    return TextClassifier(FixedClassifierEngine())


@pytest.fixture
def recognizer(decoder):
    return TextRecognizer(FixedTextEngine([1, 1, 0, 2], len(decoder)), decoder)
