"""
Main Pipeline for OCR
Orchestrates padding, text detection, region cropping, orientation
classification and text recognition
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union

import cv2
import numpy as np

from .config import ClassifierConfig, DetectorConfig, OcrOptions, RecognizerConfig
from .preprocess import ensure_bgr, make_padding, target_size
from .results import Angle, OcrResult, TextBlock, TextBox, TextLine
from .text_classifier import TextClassifier
from .text_detector import TextDetector
from .text_recognizer import TextRecognizer
from .utils import get_rotate_crop_image, rotate_180

logger = logging.getLogger(__name__)


class PipelineObserver(Protocol):
    """Receives intermediate images, keyed by stage name."""

    def __call__(self, stage: str, image: np.ndarray) -> None:
        ...


class ImageDumpObserver:
    """Writes every observed image to `directory` as a numbered PNG."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._counter = 0

    def __call__(self, stage: str, image: np.ndarray) -> None:
        path = self.directory / f"{self._counter:04d}_{stage}.png"
        self._counter += 1
        if not cv2.imwrite(str(path), image):
            logger.warning("Could not write debug image %s", path)


class OCRPipeline:
    """
    Complete pipeline for text in images

    Workflow:
    1. Padding - White border so text touching the edge is detected
    2. Text Detection (DBNet) - Probability map to quadrilateral boxes
    3. Cropping - Perspective-correct crop of every box
    4. Orientation (optional) - Per-crop or image-wide 0/180 decision
    5. Text Recognition (CRNN) - CTC decoding of every crop
    """

    def __init__(
        self,
        detector: TextDetector,
        classifier: Optional[TextClassifier],
        recognizer: TextRecognizer,
        max_workers: int = 1,
        observer: Optional[PipelineObserver] = None,
    ):
        """
        Initialize pipeline

        Args:
            detector: Text detection stage
            classifier: Orientation stage, None disables angle detection
            recognizer: Text recognition stage
            max_workers: Threads for the per-region work, 1 runs sequentially
            observer: Optional callback receiving intermediate images
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.detector = detector
        self.classifier = classifier
        self.recognizer = recognizer
        self.max_workers = max_workers
        self.observer = observer

    @classmethod
    def from_model_paths(
        cls,
        det_path: Union[str, Path],
        cls_path: Optional[Union[str, Path]],
        rec_path: Union[str, Path],
        keys_path: Optional[Union[str, Path]] = None,
        use_gpu: bool = False,
        num_threads: int = -1,
        max_workers: int = 1,
        observer: Optional[PipelineObserver] = None,
    ) -> "OCRPipeline":
        """Open the three model sessions.

        If any of them fails to load, the ones already opened are closed
        before the error propagates.
        """
        with ExitStack() as stack:
            detector = TextDetector.from_model_path(
                det_path,
                DetectorConfig(num_threads=num_threads, use_gpu=use_gpu),
            )
            stack.callback(detector.close)

            classifier = None
            if cls_path is not None:
                classifier = TextClassifier.from_model_path(
                    cls_path, ClassifierConfig(num_threads=num_threads, use_gpu=use_gpu)
                )
                stack.callback(classifier.close)

            recognizer = TextRecognizer.from_model_path(
                rec_path,
                keys_path,
                RecognizerConfig(num_threads=num_threads, use_gpu=use_gpu),
            )
            stack.callback(recognizer.close)

            pipeline = cls(detector, classifier, recognizer, max_workers, observer)
            stack.pop_all()

        logger.info("Pipeline ready: %r", pipeline)
        return pipeline

    @classmethod
    def from_catalog(
        cls,
        suite_name: str,
        models_dir: Optional[Union[str, Path]] = None,
        **kwargs,
    ) -> "OCRPipeline":
        """Download (if needed) and open a model suite from the catalog."""
        from .models import ModelRegistry

        paths = ModelRegistry(models_dir).get(suite_name)
        return cls.from_model_paths(
            paths["detector"],
            paths["classifier"],
            paths["recognizer"],
            paths.get("keys"),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, image: np.ndarray, options: Optional[OcrOptions] = None) -> OcrResult:
        """
        Run the whole pipeline on one image

        Args:
            image: Image (H, W, 3) in BGR; grayscale and BGRA are converted
            options: Per-call options (defaults if None)

        Returns:
            OcrResult whose box coordinates refer to the unpadded image
        """
        options = options or OcrOptions()
        image = ensure_bgr(image)
        start = time.perf_counter()

        padding = options.padding
        resize = target_size(image, options.img_resize, padding)
        padded = make_padding(image, padding)
        self._observe("padded", padded)

        det_start = time.perf_counter()
        boxes = self.detector(padded, resize, options, observer=self.observer)
        db_net_time_ms = (time.perf_counter() - det_start) * 1000
        logger.debug("Found %d text boxes in %.1f ms", len(boxes), db_net_time_ms)

        # crops come from the padded image, results refer to the original one
        out_boxes = [box.translated(-padding, -padding) for box in boxes]

        do_angle = options.do_angle
        if do_angle and self.classifier is None:
            logger.warning("Angle detection requested but no classifier is loaded")
            do_angle = False

        if not boxes:
            angles, lines = [], []
        elif self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                angles, lines = self._process_regions(padded, boxes, options, do_angle, executor)
        else:
            angles, lines = self._process_regions(padded, boxes, options, do_angle, None)

        blocks = [
            TextBlock.from_parts(box, angle, line)
            for box, angle, line in zip(out_boxes, angles, lines)
        ]
        detect_time_ms = (time.perf_counter() - start) * 1000
        return OcrResult.from_blocks(blocks, db_net_time_ms, detect_time_ms)

    def detect_path(self, path: Union[str, Path], options: Optional[OcrOptions] = None) -> OcrResult:
        """Load an image file and run `detect` on it."""
        img = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if img is None:
            raise FileNotFoundError(f"Could not read image: {path}")
        return self.detect(img, options)

    def __call__(self, image: np.ndarray, options: Optional[OcrOptions] = None) -> OcrResult:
        return self.detect(image, options)

    def _process_regions(
        self,
        padded: np.ndarray,
        boxes: List[TextBox],
        options: OcrOptions,
        do_angle: bool,
        executor: Optional[ThreadPoolExecutor],
    ) -> Tuple[List[Angle], List[TextLine]]:
        """Crop, orient and recognize every box, keeping detection order."""

        def map_fn(fn, items):
            return _ordered_map(fn, items, executor)

        def crop(box: TextBox) -> np.ndarray:
            return get_rotate_crop_image(
                padded, box.as_array(), options.vertical_ratio_thresh
            )

        crops = map_fn(crop, boxes)

        if self.classifier is not None:
            angles = self.classifier.classify_all(
                crops,
                do_angle=do_angle,
                most_angle=options.most_angle,
                tie_index=options.angle_tie_index,
                map_fn=map_fn,
            )
        else:
            angles = [Angle() for _ in crops]

        for i, angle in enumerate(angles):
            if angle.index == 1:
                crops[i] = rotate_180(crops[i])
            self._observe("crop", crops[i])

        lines = self.recognizer.recognize_all(crops, map_fn=map_fn)
        return angles, lines

    def _observe(self, stage: str, image: np.ndarray):
        if self.observer is not None:
            self.observer(stage, image)

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def close(self):
        """Release every model session."""
        for stage in (self.detector, self.classifier, self.recognizer):
            if stage is not None:
                stage.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return (
            f"OCRPipeline(\n"
            f"  detector={self.detector},\n"
            f"  classifier={self.classifier},\n"
            f"  recognizer={self.recognizer},\n"
            f"  max_workers={self.max_workers}\n"
            f")"
        )


def _ordered_map(fn, items, executor: Optional[ThreadPoolExecutor] = None) -> list:
    """Apply `fn` to every item; results are stored by input index."""
    items = list(items)
    if executor is None:
        return [fn(item) for item in items]

    # Pre-allocate results array
    results = [None] * len(items)
    future_to_index = {executor.submit(fn, item): i for i, item in enumerate(items)}
    for future in as_completed(future_to_index):
        results[future_to_index[future]] = future.result()
    return results
