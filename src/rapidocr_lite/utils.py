"""Utility functions for OCR pipeline."""

from typing import Optional

import cv2
import numpy as np

from .geometry import solve_homography
from .results import OcrResult


def _blank_like(img: np.ndarray) -> np.ndarray:
    shape = (1, 1) + img.shape[2:]
    return np.full(shape, 255, dtype=img.dtype)


def get_rotate_crop_image(
    img: np.ndarray,
    points: np.ndarray,
    vertical_ratio_thresh: float = 1.5,
) -> np.ndarray:
    """Crop and rotate text region from image.

    Args:
        img: Source image
        points: Text region corners (4x2) ordered TL, TR, BR, BL
        vertical_ratio_thresh: Crops at least this many times taller than
            wide are turned by 90 degrees

    Returns:
        Upright text image
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(points) != 4:
        raise ValueError(f"Box must have exactly 4 points, got {len(points)}")

    img_crop_width = int(round(max(
        np.linalg.norm(points[0] - points[1]),
        np.linalg.norm(points[2] - points[3])
    )))
    img_crop_height = int(round(max(
        np.linalg.norm(points[0] - points[3]),
        np.linalg.norm(points[1] - points[2])
    )))
    if img_crop_width <= 0 or img_crop_height <= 0:
        return _blank_like(img)

    # Axis-aligned boxes are a plain crop
    if points[0][1] == points[1][1] and points[1][0] == points[2][0]:
        x, y = max(int(points[0][0]), 0), max(int(points[0][1]), 0)
        dst_img = img[y:y + img_crop_height, x:x + img_crop_width].copy()
        if dst_img.size == 0:
            return _blank_like(img)
        return final_orientation_check(dst_img, vertical_ratio_thresh)

    img_h, img_w = img.shape[:2]
    left = max(int(np.floor(points[:, 0].min())), 0)
    top = max(int(np.floor(points[:, 1].min())), 0)
    right = min(int(np.ceil(points[:, 0].max())), img_w)
    bottom = min(int(np.ceil(points[:, 1].max())), img_h)
    if right <= left or bottom <= top:
        return _blank_like(img)

    img_crop = img[top:bottom, left:right]
    local = points - np.array([left, top], dtype=np.float64)
    M = solve_homography(local[0], local[1], local[2], local[3], img_crop_width, img_crop_height)

    # M maps destination pixels to source pixels
    dst_img = cv2.warpPerspective(
        img_crop,
        M,
        (img_crop_width, img_crop_height),
        flags=cv2.INTER_CUBIC | cv2.WARP_INVERSE_MAP,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(255, 255, 255),
    )
    return final_orientation_check(dst_img, vertical_ratio_thresh)


def final_orientation_check(img: np.ndarray, vertical_ratio_thresh: float = 1.5) -> np.ndarray:
    """Turn tall, narrow crops to landscape."""
    dst_img_height, dst_img_width = img.shape[0:2]
    if dst_img_height >= dst_img_width * vertical_ratio_thresh:
        img = np.ascontiguousarray(np.rot90(img))
    return img


def rotate_180(img: np.ndarray) -> np.ndarray:
    return cv2.rotate(img, cv2.ROTATE_180)


def draw_ocr_boxes(
    image: np.ndarray,
    result: OcrResult,
    font_path: Optional[str] = None,
) -> np.ndarray:
    """Draw OCR results on image.

    Args:
        image: Source image (BGR)
        result: OCR result whose coordinates refer to this image
        font_path: Path to font file for text rendering

    Returns:
        Image with drawn boxes and text
    """
    from PIL import Image, ImageDraw, ImageFont

    img = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
    draw = ImageDraw.Draw(img)

    font = ImageFont.load_default()
    if font_path:
        try:
            font = ImageFont.truetype(font_path, 18)
        except OSError:
            pass

    for block in result.text_blocks:
        box = np.array(block.box_points).astype(np.int32).reshape(-1, 2)
        # Red for low box scores, green for high ones
        score = min(max(block.box_score, 0.0), 1.0)
        color = (int(255 * min(2.0 * (1.0 - score), 1.0)), int(255 * min(2.0 * score, 1.0)), 0)
        draw.polygon([tuple(p) for p in box], outline=color)

        box_height = int(np.linalg.norm(box[0] - box[3]))
        box_width = int(np.linalg.norm(box[0] - box[1]))
        if block.text and box_height <= 2 * box_width:
            draw.text((box[0][0], box[0][1] - 20), block.text, fill=(255, 0, 0), font=font)

    return cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)
