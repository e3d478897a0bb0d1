"""
rapidocr_lite
Text detection, orientation and recognition with PP-OCR ONNX models
"""

from .pipeline import OCRPipeline, ImageDumpObserver, PipelineObserver
from .config import OcrOptions, DetectorConfig, ClassifierConfig, RecognizerConfig
from .results import Angle, OcrResult, TextBlock, TextBox, TextLine
from .text_detector import TextDetector
from .text_classifier import TextClassifier, aggregate_angles
from .text_recognizer import TextRecognizer
from .postprocess import CTCLabelDecode
from .onnx_base import InferenceEngine, ONNXRuntimeError, OnnxSession
from .utils import draw_ocr_boxes

__version__ = "0.1.0"
__all__ = [
    'OCRPipeline',
    'ImageDumpObserver',
    'PipelineObserver',
    'OcrOptions',
    'DetectorConfig',
    'ClassifierConfig',
    'RecognizerConfig',
    'Angle',
    'OcrResult',
    'TextBlock',
    'TextBox',
    'TextLine',
    'TextDetector',
    'TextClassifier',
    'aggregate_angles',
    'TextRecognizer',
    'CTCLabelDecode',
    'InferenceEngine',
    'ONNXRuntimeError',
    'OnnxSession',
    'draw_ocr_boxes',
]
