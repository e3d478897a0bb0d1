"""
Text Detection Module - Stage 1 of OCR Pipeline

Detects text regions in images using a DBNet probability map.
The network itself is any InferenceEngine; everything around it
(resize, normalization, box extraction) lives here.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from .config import DetectorConfig, OcrOptions
from .onnx_base import InferenceEngine, OnnxSession
from .postprocess import DBPostProcess
from .preprocess import ScaleParam, create_operators, transform
from .results import TextBox

logger = logging.getLogger(__name__)


class TextDetector:
    """Text detection stage.

    Takes one (padded) image and returns its text boxes in detection order.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        config: Optional[DetectorConfig] = None,
        observer: Optional[Callable[[str, np.ndarray], None]] = None,
    ):
        """Initialize text detector.

        Args:
            engine: Detector network, normalized tensor in, probability map out
            config: Detector configuration (uses defaults if None)
            observer: Optional callback receiving the resized detector input
        """
        if config is None:
            config = DetectorConfig()

        self.config = config
        self.engine = engine
        self.observer = observer

    @classmethod
    def from_model_path(
        cls,
        model_path: Union[str, Path],
        config: Optional[DetectorConfig] = None,
        observer: Optional[Callable[[str, np.ndarray], None]] = None,
    ) -> "TextDetector":
        config = config or DetectorConfig()
        session = OnnxSession(
            model_path,
            num_threads=config.num_threads,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )
        return cls(session, config, observer)

    def preprocess(
        self,
        image: np.ndarray,
        dst_size: int,
        observer: Optional[Callable[[str, np.ndarray], None]] = None,
    ) -> Tuple[np.ndarray, ScaleParam]:
        """Resize and normalize an image for detection.

        `observer` overrides the one given at construction for this call.

        Returns:
            Tuple of ([1, 3, H, W] tensor, scale parameters)
        """
        resize_ops = create_operators([{"DetResizeForTest": {"dst_size": dst_size}}])
        tensor_ops = create_operators([
            {"NormalizeImage": {"mean": self.config.mean, "norm": self.config.norm}},
            {"ToCHWImage": None},
            {"KeepKeys": {"keep_keys": ["image", "shape"]}},
        ])
        data = transform({"image": image}, resize_ops)
        if observer is None:
            observer = self.observer
        if observer is not None:
            observer("detector_input", data["image"])
        img, scale = transform(data, tensor_ops)
        return np.expand_dims(img, axis=0).astype(np.float32), scale

    def postprocess(
        self,
        prob_map: np.ndarray,
        scale: ScaleParam,
        options: OcrOptions,
    ) -> List[TextBox]:
        op = DBPostProcess(
            thresh=options.box_thresh,
            box_thresh=options.box_score_thresh,
            unclip_ratio=options.unclip_ratio,
            min_size=self.config.min_size,
            approx_epsilon=self.config.approx_epsilon,
        )
        return op(prob_map, scale)

    def __call__(
        self,
        image: np.ndarray,
        dst_size: int,
        options: Optional[OcrOptions] = None,
        observer: Optional[Callable[[str, np.ndarray], None]] = None,
    ) -> List[TextBox]:
        """Detect text in a single image.

        Inference failures are logged and produce an empty list.

        Args:
            image: Input image (H, W, 3) in BGR
            dst_size: Long side of the detector input
            options: Thresholds (defaults if None)
            observer: Per-call observer, falls back to the stage observer

        Returns:
            Boxes in the coordinates of `image`
        """
        options = options or OcrOptions()
        tensor, scale = self.preprocess(image, dst_size, observer)
        logger.debug(
            "Detector input %dx%d (source %dx%d)",
            scale.dst_w, scale.dst_h, scale.src_w, scale.src_h
        )

        try:
            output = self.engine(tensor)
            if output is None or np.size(output) == 0:
                logger.warning("Text detection returned no probability map")
                return []
            prob_map = np.asarray(output, dtype=np.float32).reshape(-1, scale.dst_h, scale.dst_w)[0]
        except Exception:
            logger.warning("Text detection failed, no boxes for this image", exc_info=True)
            return []

        return self.postprocess(prob_map, scale, options)

    def close(self):
        if hasattr(self.engine, "close"):
            self.engine.close()

    def __repr__(self):
        return f"TextDetector(engine={self.engine!r})"
