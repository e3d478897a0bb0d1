"""
Text Orientation Classification Module - Stage 2 of OCR Pipeline

Decides whether each text crop is upright (0) or upside down (1), and
optionally folds the per-crop votes into one decision for the image.
"""

import dataclasses
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import ClassifierConfig
from .onnx_base import InferenceEngine, OnnxSession
from .postprocess import ClsPostProcess
from .preprocess import normalize_to_tensor, resize_keep_ratio
from .results import Angle

logger = logging.getLogger(__name__)


def aggregate_angles(angles: Sequence[Angle], tie_index: int = 0) -> List[Angle]:
    """Give every region the orientation with the larger summed score.

    Scores are summed separately for index 0 and index 1; regions whose
    classification was skipped (-1) do not vote but still receive the
    winning index.

    Args:
        angles: Per-region classification results
        tie_index: Winner when both sums are equal

    Returns:
        New list of angles; the input is left untouched
    """
    if not angles:
        return []

    score_zero = sum(a.score for a in angles if a.index == 0)
    score_one = sum(a.score for a in angles if a.index == 1)

    if score_zero > score_one:
        winner = 0
    elif score_one > score_zero:
        winner = 1
    else:
        winner = tie_index

    return [dataclasses.replace(a, index=winner) for a in angles]


class TextClassifier:
    """Text orientation classification stage.

    Each crop is classified independently; `classify_all` adds the
    enable flag and the image-wide vote.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        config: Optional[ClassifierConfig] = None,
    ):
        """Initialize text classifier.

        Args:
            engine: Classifier network, normalized tensor in, [1, 2] scores out
            config: Classifier configuration (uses defaults if None)
        """
        if config is None:
            config = ClassifierConfig()

        self.config = config
        self.engine = engine
        self.cls_image_shape = config.cls_image_shape
        self.postprocess_op = ClsPostProcess(num_classes=2)

    @classmethod
    def from_model_path(
        cls,
        model_path: Union[str, Path],
        config: Optional[ClassifierConfig] = None,
    ) -> "TextClassifier":
        config = config or ClassifierConfig()
        session = OnnxSession(
            model_path,
            num_threads=config.num_threads,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )
        return cls(session, config)

    def resize_norm_img(self, img: np.ndarray) -> np.ndarray:
        """Resize to the classifier height, pad right to the fixed width.

        Returns:
            Tensor [1, C, H, W]
        """
        imgC, imgH, imgW = self.cls_image_shape
        resized_image, resized_w = resize_keep_ratio(img, imgH, imgW)
        tensor = normalize_to_tensor(resized_image, self.config.mean, self.config.norm)

        padding_im = np.zeros((1, imgC, imgH, imgW), dtype=np.float32)
        padding_im[:, :, :, 0:resized_w] = tensor
        return padding_im

    def __call__(self, img: np.ndarray) -> Angle:
        """Classify one crop; failures give Angle(index=-1)."""
        start = time.perf_counter()
        try:
            prob_out = self.engine(self.resize_norm_img(img))
            (index, score), = self.postprocess_op(np.asarray(prob_out).reshape(1, -1))
        except Exception:
            logger.warning("Angle classification failed for one region", exc_info=True)
            return Angle(index=-1, score=0.0, time_ms=(time.perf_counter() - start) * 1000)

        return Angle(index=index, score=score, time_ms=(time.perf_counter() - start) * 1000)

    def classify_all(
        self,
        img_list: Sequence[np.ndarray],
        do_angle: bool = True,
        most_angle: bool = False,
        tie_index: int = 0,
        map_fn=map,
    ) -> List[Angle]:
        """Classify a batch of crops.

        Args:
            img_list: Text crops in detection order
            do_angle: When False every crop gets Angle(index=-1, score=0)
            most_angle: Apply `aggregate_angles` to the results
            tie_index: Tie break for `aggregate_angles`
            map_fn: Ordered map used for the per-crop calls, e.g.
                ``ThreadPoolExecutor.map``
        """
        if not do_angle:
            return [Angle(index=-1, score=0.0) for _ in img_list]

        angles = list(map_fn(self, img_list))
        if most_angle:
            angles = aggregate_angles(angles, tie_index)
        return angles

    def close(self):
        if hasattr(self.engine, "close"):
            self.engine.close()

    def __repr__(self):
        return f"TextClassifier(engine={self.engine!r})"
