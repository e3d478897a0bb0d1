"""Postprocessing modules for OCR outputs."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import cv2
import numpy as np
from shapely.geometry import Polygon

from .contours import find_contours
from .geometry import minimum_area_rectangle, rectangle_size, unclip
from .preprocess import ScaleParam
from .results import TextBox, TextLine

logger = logging.getLogger(__name__)


class DBPostProcess:
    """Post-processing for DB (Differentiable Binarization) text detection.

    Converts a probability map to scored, ordered quadrilaterals.
    """

    def __init__(
        self,
        thresh=0.3,
        box_thresh=0.5,
        unclip_ratio=1.6,
        min_size=3.0,
        approx_epsilon=1.0,
    ):
        """Initialize DB post-processor.

        Args:
            thresh: Binarization threshold for probability map
            box_thresh: Minimum confidence score for boxes
            unclip_ratio: Ratio for expanding text regions
            min_size: Shortest accepted rectangle side before expansion;
                expanded boxes need min_size + 2
            approx_epsilon: Contour simplification tolerance in pixels
        """
        self.thresh = thresh
        self.box_thresh = box_thresh
        self.unclip_ratio = unclip_ratio
        self.min_size = min_size
        self.approx_epsilon = approx_epsilon

    def __call__(self, pred: np.ndarray, scale: ScaleParam) -> List[TextBox]:
        """Convert a probability map to text boxes.

        Args:
            pred: Probability map (H, W), optionally with leading unit axes
            scale: Resize parameters of the detector input

        Returns:
            Boxes in the coordinates of the (padded) source image, in
            contour discovery order
        """
        pred = np.asarray(pred, dtype=np.float32)
        while pred.ndim > 2:
            pred = pred[0]

        mask = pred > self.thresh
        contours = find_contours(mask, self.approx_epsilon)
        logger.debug("DB post-process: %d contours", len(contours))

        boxes = []
        for contour in contours:
            box = self.box_from_contour(pred, contour, scale)
            if box is not None:
                boxes.append(box)

        logger.debug("DB post-process: %d boxes accepted", len(boxes))
        return boxes

    def box_from_contour(
        self,
        pred: np.ndarray,
        contour: np.ndarray,
        scale: ScaleParam,
    ) -> Optional[TextBox]:
        """Score, expand and rescale a single contour; None when rejected."""
        if len(contour) < 4:
            return None

        points, sside = self.get_mini_boxes(contour)
        if sside < self.min_size:
            return None

        score = self.box_score_fast(pred, points)
        if score < self.box_thresh:
            return None

        expanded = unclip(points, self.unclip_ratio)
        if expanded is None or len(expanded) < 3:
            return None

        box, sside = self.get_mini_boxes(expanded)
        if sside < self.min_size + 2:
            return None

        box[:, 0] = np.clip(np.trunc(box[:, 0] / scale.scale_w), 0, scale.src_w)
        box[:, 1] = np.clip(np.trunc(box[:, 1] / scale.scale_h), 0, scale.src_h)

        poly = Polygon(box)
        if not poly.is_valid or poly.area <= 0:
            return None

        return TextBox(points=box, score=float(score))

    @staticmethod
    def get_mini_boxes(contour) -> Tuple[np.ndarray, float]:
        """Get minimum area rectangle ordered TL, TR, BR, BL and its short side."""
        rect = minimum_area_rectangle(contour)
        width, height = rectangle_size(rect)
        points = sorted(list(rect), key=lambda x: x[0])

        if points[1][1] > points[0][1]:
            index_1, index_4 = 0, 1
        else:
            index_1, index_4 = 1, 0

        if points[3][1] > points[2][1]:
            index_2, index_3 = 2, 3
        else:
            index_2, index_3 = 3, 2

        box = np.array([points[index_1], points[index_2], points[index_3], points[index_4]])
        return box, min(width, height)

    @staticmethod
    def box_score_fast(bitmap: np.ndarray, box: np.ndarray) -> float:
        """Mean probability inside the box, rasterized over its bounding box."""
        h, w = bitmap.shape[:2]
        box = np.array(box, dtype=np.float64).reshape(-1, 2)

        xmin = int(np.clip(np.floor(box[:, 0].min()), 0, w - 1))
        xmax = int(np.clip(np.ceil(box[:, 0].max()), 0, w - 1))
        ymin = int(np.clip(np.floor(box[:, 1].min()), 0, h - 1))
        ymax = int(np.clip(np.ceil(box[:, 1].max()), 0, h - 1))

        mask = np.zeros((ymax - ymin + 1, xmax - xmin + 1), dtype=np.uint8)
        box[:, 0] = box[:, 0] - xmin
        box[:, 1] = box[:, 1] - ymin
        cv2.fillPoly(mask, box.reshape(1, -1, 2).astype("int32"), 1)
        if not mask.any():
            return 0.0
        crop = bitmap[ymin:ymax + 1, xmin:xmax + 1].astype(np.float32)
        return float(cv2.mean(crop, mask)[0])


class ClsPostProcess:
    """Post-processing for text orientation classification."""

    def __init__(self, num_classes: int = 2):
        self.num_classes = num_classes

    def __call__(self, preds: np.ndarray) -> List[Tuple[int, float]]:
        """Convert class probabilities to (index, score) pairs.

        Args:
            preds: Prediction probabilities (N, C); only the first
                num_classes columns are considered
        """
        preds = np.asarray(preds, dtype=np.float32).reshape(len(preds), -1)[:, :self.num_classes]
        pred_idxs = preds.argmax(axis=1)
        return [(int(idx), float(preds[i, idx])) for i, idx in enumerate(pred_idxs)]


class CTCLabelDecode:
    """Greedy CTC decoding for text recognition.

    The vocabulary has the blank symbol at index 0 and a trailing space.
    """

    BLANK = "blank"

    def __init__(self, character: List[str]):
        if not character or character[0] != self.BLANK:
            raise ValueError("vocabulary must start with the blank symbol")
        self.character = list(character)
        self.dict = {char: i for i, char in enumerate(self.character)}

    @classmethod
    def from_lines(cls, lines: List[str]) -> "CTCLabelDecode":
        return cls([cls.BLANK] + list(lines) + [" "])

    @classmethod
    def from_file(cls, character_dict_path: Union[str, Path]) -> "CTCLabelDecode":
        """Load a keys file, one glyph per line (UTF-8)."""
        path = Path(character_dict_path)
        if not path.is_file():
            raise FileNotFoundError(f"Recognizer keys file does not exist: '{path}'")

        lines = []
        with open(path, "rb") as fin:
            for line in fin.readlines():
                lines.append(line.decode("utf-8").strip("\n").strip("\r\n"))
        return cls.from_lines(lines)

    @classmethod
    def from_metadata(cls, metadata: Dict[str, str]) -> "CTCLabelDecode":
        """Load the vocabulary embedded in the model's ``character`` metadata."""
        character_data = metadata.get("character")
        if not character_data:
            raise ValueError("model metadata has no 'character' entry")
        lines = [line for line in character_data.splitlines() if line]
        return cls.from_lines(lines)

    def __len__(self):
        return len(self.character)

    def __call__(self, preds: np.ndarray) -> TextLine:
        """Decode one region.

        Args:
            preds: Probabilities [time, vocab] or [1, time, vocab]
        """
        if isinstance(preds, (tuple, list)):
            preds = preds[-1]
        preds = np.asarray(preds)
        while preds.ndim > 2:
            preds = preds[0]

        preds_idx = preds.argmax(axis=1)
        preds_prob = preds.max(axis=1)
        return self.decode(preds_idx, preds_prob)

    def decode(self, text_index, text_prob) -> TextLine:
        """Drop blanks, out-of-range indices and repeats of the previous frame."""
        chars = []
        scores = []
        last_index = 0
        for index, prob in zip(text_index, text_prob):
            index = int(index)
            if 0 < index < len(self.character) and index != last_index:
                chars.append(self.character[index])
                scores.append(float(prob))
            last_index = index
        return TextLine(chars=chars, char_scores=scores)
