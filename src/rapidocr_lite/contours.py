"""Boundary tracing of binary masks."""

from typing import List

import cv2
import numpy as np


def find_contours(mask: np.ndarray, epsilon: float = 1.0) -> List[np.ndarray]:
    """Trace the outer boundaries of the foreground components of a mask.

    Components are 8-connected. Hole boundaries are dropped, but components
    sitting inside a hole still get their own outer boundary.

    Args:
        mask: 2D array, non-zero is foreground
        epsilon: Douglas-Peucker tolerance in pixels

    Returns:
        List of simplified closed contours, each (N, 2) float32. N may be
        smaller than 4.
    """
    if mask.ndim == 3:
        mask = mask.squeeze()
    if mask.ndim != 2:
        raise ValueError(f"Expected 2D mask, got shape {mask.shape}")

    bitmap = (mask > 0).astype(np.uint8) * 255
    outs = cv2.findContours(bitmap, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_NONE)
    # OpenCV 3 returns (image, contours, hierarchy)
    contours, hierarchy = outs[-2], outs[-1]
    if hierarchy is None:
        return []

    result = []
    for contour, (_, _, _, parent) in zip(contours, hierarchy[0]):
        if parent != -1:
            continue
        approx = cv2.approxPolyDP(contour, epsilon, True)
        result.append(approx.reshape(-1, 2).astype(np.float32))
    return result
