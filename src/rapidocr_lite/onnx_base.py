"""ONNX Runtime inference sessions with GPU/TensorRT support."""

import logging
import traceback
from pathlib import Path
from typing import Dict, List, Protocol, Union

import numpy as np
import onnxruntime
from onnxruntime.capi import _pybind_state as C

logger = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    """Anything that maps a normalized [1, C, H, W] tensor to an output tensor."""

    def __call__(self, tensor: np.ndarray) -> np.ndarray:
        ...


class ONNXRuntimeError(Exception):
    """Exception raised when ONNX Runtime encounters an error."""
    pass


class OnnxSession:
    """Single-input ONNX model with hardware acceleration.

    Usable as a context manager; `close()` releases the native session.
    """

    def __init__(
        self,
        model_path: Union[str, Path],
        num_threads: int = -1,
        use_gpu: bool = False,
        use_tensorrt: bool = False,
    ):
        """Initialize ONNX Runtime session.

        Args:
            model_path: Path to ONNX model file
            num_threads: Intra-op threads for CPU execution (-1 for auto)
            use_gpu: Enable CUDA GPU acceleration
            use_tensorrt: Enable TensorRT acceleration (requires TensorRT)
        """
        self.model_path = Path(model_path)
        if not self.model_path.is_file():
            raise FileNotFoundError(f"Model not found: {model_path}")

        sess_opt = onnxruntime.SessionOptions()
        sess_opt.log_severity_level = 4
        sess_opt.graph_optimization_level = onnxruntime.GraphOptimizationLevel.ORT_ENABLE_ALL
        if num_threads > 0:
            sess_opt.intra_op_num_threads = num_threads

        providers = self._get_providers(use_gpu, use_tensorrt)
        self.session = onnxruntime.InferenceSession(
            str(self.model_path),
            sess_options=sess_opt,
            providers=providers,
        )

        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name
        logger.debug(
            "Loaded %s (input=%s, providers=%s)",
            self.model_path.name, self.input_name, self.session.get_providers()
        )

    @staticmethod
    def _get_providers(use_gpu: bool, use_tensorrt: bool) -> List:
        """Get execution providers based on hardware availability.

        Priority: TensorRT > CUDA > CPU
        """
        available_providers = C.get_available_providers()
        providers = []

        if use_tensorrt and "TensorrtExecutionProvider" in available_providers:
            providers.append(('TensorrtExecutionProvider', {}))

        if use_gpu and "CUDAExecutionProvider" in available_providers:
            providers.append((
                'CUDAExecutionProvider',
                {"cudnn_conv_algo_search": "DEFAULT"}
            ))

        # CPU (always available as fallback)
        providers.append('CPUExecutionProvider')

        return providers

    def __call__(self, tensor: np.ndarray) -> np.ndarray:
        """Run inference and return the first output."""
        if self.session is None:
            raise ONNXRuntimeError(f"Session for {self.model_path.name} is closed")
        try:
            return self.session.run([self.output_name], {self.input_name: tensor})[0]
        except Exception as e:
            raise ONNXRuntimeError(traceback.format_exc()) from e

    def metadata(self) -> Dict[str, str]:
        """Custom metadata map embedded in the model."""
        return dict(self.session.get_modelmeta().custom_metadata_map)

    def close(self):
        self.session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return f"OnnxSession({self.model_path.name})"
