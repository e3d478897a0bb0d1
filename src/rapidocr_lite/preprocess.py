"""Preprocessing operations for OCR."""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class ScaleParam:
    """Source size, detector input size and the per-axis factors between them."""
    src_w: int
    src_h: int
    dst_w: int
    dst_h: int
    scale_w: float
    scale_h: float

    @classmethod
    def from_image(cls, img: np.ndarray, dst_size: int) -> "ScaleParam":
        """Fit the long side to dst_size, snapping both sides to multiples of 32."""
        src_h, src_w = img.shape[:2]
        if src_w > src_h:
            ratio = float(dst_size) / src_w
        else:
            ratio = float(dst_size) / src_h

        dst_w = max(int(round(src_w * ratio / 32) * 32), 32)
        dst_h = max(int(round(src_h * ratio / 32) * 32), 32)

        return cls(
            src_w=src_w,
            src_h=src_h,
            dst_w=dst_w,
            dst_h=dst_h,
            scale_w=dst_w / float(src_w),
            scale_h=dst_h / float(src_h),
        )


def target_size(img: np.ndarray, img_resize: int, padding: int) -> int:
    """Long side for the detector: never upscales, then accounts for padding."""
    origin_max_side = max(img.shape[:2])
    if img_resize <= 0 or img_resize > origin_max_side:
        resize = origin_max_side
    else:
        resize = img_resize
    return resize + 2 * padding


def make_padding(img: np.ndarray, padding: int) -> np.ndarray:
    """Add a white border of `padding` pixels on every side."""
    if padding <= 0:
        return img
    return cv2.copyMakeBorder(
        img, padding, padding, padding, padding,
        cv2.BORDER_CONSTANT, value=(255, 255, 255)
    )


def ensure_bgr(img: np.ndarray) -> np.ndarray:
    """Convert grayscale or BGRA input to 3-channel BGR."""
    if img.ndim == 2 or img.shape[2] == 1:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


class DetResizeForTest:
    """Resize image for text detection."""

    def __init__(self, dst_size: int, **kwargs):
        self.dst_size = dst_size

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        scale = ScaleParam.from_image(img, self.dst_size)
        data['image'] = cv2.resize(img, (scale.dst_w, scale.dst_h), interpolation=cv2.INTER_CUBIC)
        data['shape'] = scale
        return data


class NormalizeImage:
    """Subtract a per-channel mean and multiply by a per-channel scale."""

    def __init__(self, mean: Sequence[float], norm: Sequence[float], **kwargs):
        self.mean = np.array(mean, dtype=np.float32).reshape((1, 1, 3))
        self.norm = np.array(norm, dtype=np.float32).reshape((1, 1, 3))

    def __call__(self, data: Dict) -> Dict:
        img = data['image'].astype('float32')
        data['image'] = (img - self.mean) * self.norm
        return data


class ToCHWImage:
    """Convert image from HWC to CHW format."""

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        data['image'] = img.transpose((2, 0, 1))
        return data


class KeepKeys:
    """Keep only specified keys in data dict."""

    def __init__(self, keep_keys: List[str], **kwargs):
        self.keep_keys = keep_keys

    def __call__(self, data: Dict) -> Tuple:
        return tuple(data[key] for key in self.keep_keys)


_OPERATORS = {
    "DetResizeForTest": DetResizeForTest,
    "NormalizeImage": NormalizeImage,
    "ToCHWImage": ToCHWImage,
    "KeepKeys": KeepKeys,
}


def create_operators(op_param_list: List[Dict]):
    """Create preprocessing operators from config list.

    Args:
        op_param_list: List of dicts like [{"OpName": {params}}]

    Returns:
        List of operator instances
    """
    ops = []
    for operator in op_param_list:
        if not isinstance(operator, dict) or len(operator) != 1:
            raise ValueError(f"Operator entry must be a single-key dict, got {operator!r}")
        op_name = list(operator)[0]
        if op_name not in _OPERATORS:
            raise ValueError(f"Unknown preprocessing operator: {op_name}")
        param = {} if operator[op_name] is None else operator[op_name]
        ops.append(_OPERATORS[op_name](**param))
    return ops


def transform(data: Dict, ops: List):
    """Apply preprocessing operators sequentially.

    Returns:
        Output of the last operator, or None if any operator returned None
    """
    for op in ops:
        data = op(data)
        if data is None:
            return None
    return data


def normalize_to_tensor(img: np.ndarray, mean: Sequence[float], norm: Sequence[float]) -> np.ndarray:
    """(img - mean) * norm as a [1, C, H, W] float32 tensor."""
    data = NormalizeImage(mean, norm)({'image': img})
    return ToCHWImage()(data)['image'][np.newaxis, :].astype(np.float32)


def resize_keep_ratio(img: np.ndarray, dst_h: int, max_w: int) -> Tuple[np.ndarray, int]:
    """Resize to a fixed height keeping the aspect ratio, capped at max_w.

    Returns:
        Resized image and its width
    """
    h, w = img.shape[:2]
    ratio = w / float(h)
    resized_w = min(max_w, int(np.ceil(dst_h * ratio)))
    resized_w = max(resized_w, 1)
    return cv2.resize(img, (resized_w, dst_h), interpolation=cv2.INTER_CUBIC), resized_w
