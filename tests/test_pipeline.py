"""End-to-end pipeline tests with fake networks."""

import numpy as np
import pytest

import rapidocr_lite.pipeline as pipeline_module
from rapidocr_lite.config import OcrOptions
from rapidocr_lite.pipeline import ImageDumpObserver, OCRPipeline
from rapidocr_lite.text_classifier import TextClassifier
from rapidocr_lite.text_detector import TextDetector
from rapidocr_lite.text_recognizer import TextRecognizer

from conftest import (
    ClosableEngine,
    DarknessTextEngine,
    FailingEngine,
    FixedClassifierEngine,
    ThresholdDetectorEngine,
    banded_image,
)

THREE_BANDS = [(20, 50, 0), (150, 180, 60), (280, 310, 120)]


def _center_y(block):
    return np.mean([y for _, y in block.box_points])


def _band_text(block):
    cy = _center_y(block)
    for (top, bottom, _), text in zip(THREE_BANDS, "abc"):
        if top <= cy <= bottom:
            return text
    return None


@pytest.fixture
def banded_pipeline(decoder):
    def build(max_workers=1, classifier_scores=(0.9, 0.1), observer=None):
        return OCRPipeline(
            TextDetector(ThresholdDetectorEngine()),
            TextClassifier(FixedClassifierEngine(classifier_scores)),
            TextRecognizer(DarknessTextEngine(len(decoder)), decoder),
            max_workers=max_workers,
            observer=observer,
        )
    return build


class TestDetect:
    """Single image through every stage"""

    def test_single_horizontal_line(self, detector, classifier, recognizer):
        img = banded_image([(40, 70, 0)], width=200, height=110)
        result = OCRPipeline(detector, classifier, recognizer).detect(img)

        assert len(result.text_blocks) == 1
        block = result.text_blocks[0]
        assert block.text == "ab"
        assert result.str_res == "ab"
        assert block.angle_index == 0
        assert block.box_score == pytest.approx(0.9, abs=0.02)

        # box is in unpadded coordinates and covers the band
        xs = [x for x, _ in block.box_points]
        ys = [y for _, y in block.box_points]
        assert min(xs) <= 20 and max(xs) >= 179
        assert min(ys) <= 40 and max(ys) >= 69
        assert min(xs) > -50 and max(xs) < 250

        assert result.detect_time_ms >= result.db_net_time_ms >= 0
        assert block.block_time_ms == pytest.approx(block.angle_time_ms + block.crnn_time_ms)

    def test_padding_does_not_shift_boxes(self, detector, classifier, recognizer):
        img = banded_image([(40, 70, 0)], width=200, height=110)
        pipe = OCRPipeline(detector, classifier, recognizer)
        a = pipe.detect(img, OcrOptions(padding=50)).text_blocks[0]
        b = pipe.detect(img, OcrOptions(padding=20)).text_blocks[0]
        assert np.allclose(a.box_points, b.box_points, atol=6)

    def test_blank_image(self, detector, classifier, recognizer):
        result = OCRPipeline(detector, classifier, recognizer).detect(
            np.full((64, 64, 3), 255, dtype=np.uint8)
        )
        assert result.text_blocks == ()
        assert result.str_res == ""

    def test_grayscale_input(self, detector, classifier, recognizer):
        img = banded_image([(40, 70, 0)], width=200, height=110)[:, :, 0]
        result = OCRPipeline(detector, classifier, recognizer).detect(img)
        assert result.texts == ["ab"]

    def test_lines_joined_with_newline(self, banded_pipeline):
        result = banded_pipeline().detect(banded_image(THREE_BANDS))
        assert len(result.text_blocks) == 3
        assert result.str_res == "\n".join(b.text for b in result.text_blocks)
        assert sorted(result.texts) == ["a", "b", "c"]


class TestOrientation:
    def test_upside_down_regions_are_rotated(self, detector, recognizer, monkeypatch):
        calls = []
        original = pipeline_module.rotate_180
        monkeypatch.setattr(pipeline_module, "rotate_180", lambda img: calls.append(1) or original(img))

        clf = TextClassifier(FixedClassifierEngine((0.1, 0.9)))
        result = OCRPipeline(detector, clf, recognizer).detect(
            banded_image([(40, 70, 0)], width=200, height=110)
        )
        assert result.text_blocks[0].angle_index == 1
        assert len(calls) == 1

    def test_angle_disabled(self, detector, recognizer):
        clf = TextClassifier(FailingEngine())
        result = OCRPipeline(detector, clf, recognizer).detect(
            banded_image([(40, 70, 0)], width=200, height=110),
            OcrOptions(do_angle=False),
        )
        block = result.text_blocks[0]
        assert (block.angle_index, block.angle_score) == (-1, 0.0)

    def test_no_classifier_loaded(self, detector, recognizer):
        result = OCRPipeline(detector, None, recognizer).detect(
            banded_image([(40, 70, 0)], width=200, height=110)
        )
        assert result.text_blocks[0].angle_index == -1
        assert result.texts == ["ab"]


class TestFallbacks:
    """A failing network degrades only its own part of the result"""

    def test_detector_failure(self, classifier, recognizer):
        result = OCRPipeline(TextDetector(FailingEngine()), classifier, recognizer).detect(
            banded_image([(40, 70, 0)])
        )
        assert result.text_blocks == ()
        assert result.str_res == ""

    def test_classifier_failure_per_region(self, detector, recognizer):
        clf = TextClassifier(FailingEngine())
        result = OCRPipeline(detector, clf, recognizer).detect(
            banded_image([(40, 70, 0)], width=200, height=110),
            OcrOptions(most_angle=False),
        )
        block = result.text_blocks[0]
        assert block.angle_index == -1
        assert block.text == "ab"

    def test_classifier_failure_with_most_angle(self, detector, recognizer):
        clf = TextClassifier(FailingEngine())
        result = OCRPipeline(detector, clf, recognizer).detect(
            banded_image([(40, 70, 0)], width=200, height=110),
            OcrOptions(most_angle=True),
        )
        assert result.text_blocks[0].angle_index == 0

    def test_recognizer_failure(self, detector, classifier, decoder):
        rec = TextRecognizer(FailingEngine(), decoder)
        result = OCRPipeline(detector, classifier, rec).detect(
            banded_image([(40, 70, 0)], width=200, height=110)
        )
        assert len(result.text_blocks) == 1
        assert result.text_blocks[0].text == ""
        assert result.text_blocks[0].char_scores == ()


class TestConcurrency:
    def test_worker_pool_keeps_detection_order(self, banded_pipeline):
        img = banded_image(THREE_BANDS)
        sequential = banded_pipeline(max_workers=1).detect(img)
        pooled = banded_pipeline(max_workers=4).detect(img)

        assert [b.box_points for b in pooled.text_blocks] == [b.box_points for b in sequential.text_blocks]
        assert pooled.texts == sequential.texts
        for block in pooled.text_blocks:
            assert block.text == _band_text(block)

    def test_invalid_worker_count(self, detector, classifier, recognizer):
        with pytest.raises(ValueError):
            OCRPipeline(detector, classifier, recognizer, max_workers=0)


class TestObserver:
    def test_stages_reported(self, banded_pipeline):
        seen = []
        pipe = banded_pipeline(observer=lambda stage, img: seen.append(stage))
        pipe.detect(banded_image(THREE_BANDS))
        assert seen[0] == "padded"
        assert seen[1] == "detector_input"
        assert seen[2:] == ["crop"] * 3

    def test_image_dump_observer(self, banded_pipeline, tmp_path):
        pipe = banded_pipeline(observer=ImageDumpObserver(tmp_path / "debug"))
        pipe.detect(banded_image(THREE_BANDS))
        names = sorted(p.name for p in (tmp_path / "debug").iterdir())
        assert names[0] == "0000_padded.png"
        assert names[1] == "0001_detector_input.png"
        assert len(names) == 5

    def test_shared_detector_reports_to_each_pipeline(self, classifier, recognizer):
        detector = TextDetector(ThresholdDetectorEngine())
        first, second = [], []
        pipe_a = OCRPipeline(detector, classifier, recognizer, observer=lambda stage, img: first.append(stage))
        pipe_b = OCRPipeline(detector, classifier, recognizer, observer=lambda stage, img: second.append(stage))

        pipe_b.detect(banded_image([(40, 70, 0)], width=200, height=110))
        assert first == []
        assert second[:2] == ["padded", "detector_input"]
        assert detector.observer is None

        pipe_a.detect(banded_image([(40, 70, 0)], width=200, height=110))
        assert first[:2] == ["padded", "detector_input"]
        assert second.count("detector_input") == 1


class TestLifetime:
    def test_detect_path(self, detector, classifier, recognizer, tmp_path):
        import cv2

        path = tmp_path / "line.png"
        cv2.imwrite(str(path), banded_image([(40, 70, 0)], width=200, height=110))
        with OCRPipeline(detector, classifier, recognizer) as pipe:
            assert pipe.detect_path(path).texts == ["ab"]

    def test_detect_path_missing(self, detector, classifier, recognizer, tmp_path):
        with pytest.raises(FileNotFoundError):
            OCRPipeline(detector, classifier, recognizer).detect_path(tmp_path / "nope.png")

    def test_close_releases_engines(self, decoder):
        engines = [ClosableEngine(), ClosableEngine(), ClosableEngine()]
        pipe = OCRPipeline(
            TextDetector(engines[0]),
            TextClassifier(engines[1]),
            TextRecognizer(engines[2], decoder),
        )
        with pipe:
            pass
        assert all(e.closed for e in engines)

    def test_from_model_paths_releases_opened_sessions(self, monkeypatch, tmp_path):
        opened = []

        def fake_detector(path, config=None, observer=None):
            engine = ClosableEngine()
            opened.append(engine)
            return TextDetector(engine, config, observer)

        def fake_classifier(path, config=None):
            engine = ClosableEngine()
            opened.append(engine)
            return TextClassifier(engine, config)

        def failing_recognizer(path, keys=None, config=None):
            raise FileNotFoundError(path)

        monkeypatch.setattr(TextDetector, "from_model_path", staticmethod(fake_detector))
        monkeypatch.setattr(TextClassifier, "from_model_path", staticmethod(fake_classifier))
        monkeypatch.setattr(TextRecognizer, "from_model_path", staticmethod(failing_recognizer))

        with pytest.raises(FileNotFoundError):
            OCRPipeline.from_model_paths(tmp_path / "det", tmp_path / "cls", tmp_path / "rec")
        assert len(opened) == 2
        assert all(e.closed for e in opened)
