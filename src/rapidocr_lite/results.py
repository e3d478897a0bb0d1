"""Result types produced by the OCR stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]


def _as_points(points) -> Tuple[Point, ...]:
    return tuple((float(x), float(y)) for x, y in np.asarray(points, dtype=np.float64).reshape(-1, 2))


@dataclass(frozen=True)
class TextBox:
    """Oriented quadrilateral ordered top-left, top-right, bottom-right, bottom-left."""
    points: Tuple[Point, ...]
    score: float

    def __post_init__(self):
        pts = _as_points(self.points)
        if len(pts) != 4:
            raise ValueError(f"TextBox needs exactly 4 points, got {len(pts)}")
        object.__setattr__(self, "points", pts)

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float32)

    def translated(self, dx: float, dy: float) -> TextBox:
        """Return a copy shifted by (dx, dy)."""
        return TextBox(points=tuple((x + dx, y + dy) for x, y in self.points), score=self.score)


@dataclass(frozen=True)
class Angle:
    """Orientation of one region: -1 skipped, 0 upright, 1 rotated 180 degrees."""
    index: int = -1
    score: float = 0.0
    time_ms: float = 0.0


@dataclass(frozen=True)
class TextLine:
    """Greedy CTC output for one region."""
    chars: Tuple[str, ...] = ()
    char_scores: Tuple[float, ...] = ()
    time_ms: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "chars", tuple(self.chars))
        object.__setattr__(self, "char_scores", tuple(float(s) for s in self.char_scores))
        if len(self.chars) != len(self.char_scores):
            raise ValueError("chars and char_scores must have the same length")

    @property
    def text(self) -> str:
        return "".join(self.chars)


@dataclass(frozen=True)
class TextBlock:
    box_points: Tuple[Point, ...]
    box_score: float
    angle_index: int
    angle_score: float
    angle_time_ms: float
    chars: Tuple[str, ...]
    char_scores: Tuple[float, ...]
    crnn_time_ms: float
    block_time_ms: float

    @classmethod
    def from_parts(cls, box: TextBox, angle: Angle, line: TextLine) -> TextBlock:
        return cls(
            box_points=box.points,
            box_score=box.score,
            angle_index=angle.index,
            angle_score=angle.score,
            angle_time_ms=angle.time_ms,
            chars=line.chars,
            char_scores=line.char_scores,
            crnn_time_ms=line.time_ms,
            block_time_ms=angle.time_ms + line.time_ms,
        )

    @property
    def text(self) -> str:
        return "".join(self.chars)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "box": [list(p) for p in self.box_points],
            "box_score": self.box_score,
            "angle_index": self.angle_index,
            "angle_score": self.angle_score,
            "text": self.text,
            "char_scores": list(self.char_scores),
            "angle_time_ms": self.angle_time_ms,
            "crnn_time_ms": self.crnn_time_ms,
            "block_time_ms": self.block_time_ms,
        }


@dataclass(frozen=True)
class OcrResult:
    text_blocks: Tuple[TextBlock, ...] = ()
    db_net_time_ms: float = 0.0
    detect_time_ms: float = 0.0
    str_res: str = field(default="")

    @classmethod
    def from_blocks(
        cls,
        blocks: Sequence[TextBlock],
        db_net_time_ms: float,
        detect_time_ms: float,
    ) -> OcrResult:
        blocks = tuple(blocks)
        return cls(
            text_blocks=blocks,
            db_net_time_ms=db_net_time_ms,
            detect_time_ms=detect_time_ms,
            str_res="\n".join(block.text for block in blocks),
        )

    @property
    def texts(self) -> List[str]:
        return [block.text for block in self.text_blocks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text_blocks": [block.to_dict() for block in self.text_blocks],
            "db_net_time_ms": self.db_net_time_ms,
            "detect_time_ms": self.detect_time_ms,
            "text": self.str_res,
        }

    def __str__(self) -> str:
        return (
            f"OcrResult(blocks={len(self.text_blocks)}, "
            f"db_net_time_ms={self.db_net_time_ms:.1f}, detect_time_ms={self.detect_time_ms:.1f})"
        )
