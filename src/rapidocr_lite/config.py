"""Configuration classes for OCR modules."""

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class OcrOptions:
    """Per-call options for a detection pass.

    `vertical_ratio_thresh` and `angle_tie_index` are empirically chosen and
    not derived from anything; expose them so they can be calibrated.
    """
    box_score_thresh: float = 0.5  # Minimum mean probability inside a box
    box_thresh: float = 0.3  # Binarization threshold for the probability map
    unclip_ratio: float = 1.6  # Text region expansion ratio
    do_angle: bool = True  # Run orientation classification
    most_angle: bool = True  # One orientation vote for the whole image
    img_resize: int = 1024  # Long-side target, <= 0 keeps the original size
    padding: int = 50  # White border added before detection
    vertical_ratio_thresh: float = 1.5  # height / width that triggers a 90 degree turn
    angle_tie_index: int = 0  # Winner when both orientations score the same

    def __post_init__(self):
        for name in ("box_score_thresh", "box_thresh"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.unclip_ratio <= 0:
            raise ValueError(f"unclip_ratio must be positive, got {self.unclip_ratio}")
        if self.padding < 0:
            raise ValueError(f"padding must not be negative, got {self.padding}")
        if self.vertical_ratio_thresh <= 0:
            raise ValueError(
                f"vertical_ratio_thresh must be positive, got {self.vertical_ratio_thresh}"
            )
        if self.angle_tie_index not in (0, 1):
            raise ValueError(f"angle_tie_index must be 0 or 1, got {self.angle_tie_index}")


@dataclass
class DetectorConfig:
    """Configuration for text detection stage."""
    mean: Tuple[float, float, float] = (0.485 * 255, 0.456 * 255, 0.406 * 255)
    norm: Tuple[float, float, float] = (
        1.0 / 0.229 / 255.0,
        1.0 / 0.224 / 255.0,
        1.0 / 0.225 / 255.0,
    )
    min_size: float = 3.0  # Shortest accepted rectangle side, in map pixels
    approx_epsilon: float = 1.0  # Contour simplification tolerance
    num_threads: int = -1  # Intra-op threads, -1 lets onnxruntime decide
    use_gpu: bool = False  # Enable CUDA GPU acceleration
    use_tensorrt: bool = False  # Enable TensorRT acceleration


@dataclass
class ClassifierConfig:
    """Configuration for text orientation classification stage."""
    cls_image_shape: List[int] = field(default_factory=lambda: [3, 48, 192])  # [C, H, W]
    mean: Tuple[float, float, float] = (127.5, 127.5, 127.5)
    norm: Tuple[float, float, float] = (1.0 / 127.5, 1.0 / 127.5, 1.0 / 127.5)
    num_threads: int = -1
    use_gpu: bool = False
    use_tensorrt: bool = False


@dataclass
class RecognizerConfig:
    """Configuration for text recognition stage."""
    rec_image_shape: List[int] = field(default_factory=lambda: [3, 48, 320])  # [C, H, W]
    mean: Tuple[float, float, float] = (127.5, 127.5, 127.5)
    norm: Tuple[float, float, float] = (1.0 / 127.5, 1.0 / 127.5, 1.0 / 127.5)
    num_threads: int = -1
    use_gpu: bool = False
    use_tensorrt: bool = False
