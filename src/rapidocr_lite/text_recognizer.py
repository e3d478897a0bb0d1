"""
Text Recognition Module - Stage 3 of OCR Pipeline

Recognizes text from upright text crops with a CTC recognizer.
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from .config import RecognizerConfig
from .onnx_base import InferenceEngine, OnnxSession
from .postprocess import CTCLabelDecode
from .preprocess import normalize_to_tensor, resize_keep_ratio
from .results import TextLine

logger = logging.getLogger(__name__)


class TextRecognizer:
    """Text recognition stage.

    Takes one text crop and returns its characters with per-character scores.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        decoder: CTCLabelDecode,
        config: Optional[RecognizerConfig] = None,
    ):
        """Initialize text recognizer.

        Args:
            engine: Recognizer network, normalized tensor in,
                [1, time, vocab] probabilities out
            decoder: CTC decoder holding the vocabulary
            config: Recognizer configuration (uses defaults if None)
        """
        if config is None:
            config = RecognizerConfig()

        self.config = config
        self.engine = engine
        self.rec_image_shape = config.rec_image_shape
        self.postprocess_op = decoder

    @classmethod
    def from_model_path(
        cls,
        model_path: Union[str, Path],
        char_dict_path: Optional[Union[str, Path]] = None,
        config: Optional[RecognizerConfig] = None,
    ) -> "TextRecognizer":
        """Open the model and load its vocabulary.

        The vocabulary comes from `char_dict_path` when given, otherwise from
        the ``character`` entry of the model metadata.
        """
        config = config or RecognizerConfig()
        session = OnnxSession(
            model_path,
            num_threads=config.num_threads,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
        )
        try:
            if char_dict_path:
                decoder = CTCLabelDecode.from_file(char_dict_path)
            else:
                decoder = CTCLabelDecode.from_metadata(session.metadata())
                logger.info("Loaded %d keys from model metadata", len(decoder))
        except Exception:
            session.close()
            raise
        return cls(session, decoder, config)

    def resize_norm_img(self, img: np.ndarray) -> np.ndarray:
        """Resize to the recognizer height and pad right.

        The padded width is the configured width, or wider for long crops.

        Returns:
            Tensor [1, C, H, W]
        """
        imgC, imgH, imgW = self.rec_image_shape
        h, w = img.shape[:2]
        max_wh_ratio = max(imgW / float(imgH), w / float(h))
        imgW = int(imgH * max_wh_ratio)

        resized_image, resized_w = resize_keep_ratio(img, imgH, imgW)
        tensor = normalize_to_tensor(resized_image, self.config.mean, self.config.norm)

        padding_im = np.zeros((1, imgC, imgH, imgW), dtype=np.float32)
        padding_im[:, :, :, 0:resized_w] = tensor
        return padding_im

    def __call__(self, img: np.ndarray) -> TextLine:
        """Recognize one crop; failures give an empty TextLine."""
        start = time.perf_counter()
        try:
            preds = self.engine(self.resize_norm_img(img))
            line = self.postprocess_op(preds)
        except Exception:
            logger.warning("Text recognition failed for one region", exc_info=True)
            return TextLine(time_ms=(time.perf_counter() - start) * 1000)

        return TextLine(
            chars=line.chars,
            char_scores=line.char_scores,
            time_ms=(time.perf_counter() - start) * 1000,
        )

    def recognize_all(self, img_list, map_fn=map) -> List[TextLine]:
        """Recognize crops in order; `map_fn` may be a pool's ordered map."""
        return list(map_fn(self, img_list))

    def close(self):
        if hasattr(self.engine, "close"):
            self.engine.close()

    def __repr__(self):
        return f"TextRecognizer(engine={self.engine!r}, vocab={len(self.postprocess_op)})"
