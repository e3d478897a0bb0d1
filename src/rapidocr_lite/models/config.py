"""
Model definitions: sources, filenames, and versions.

Single source of truth for every PP-OCR ONNX model suite the pipeline can
download. A suite is one detector, one classifier and one recognizer; the
recognizer vocabulary is either a separate keys file or embedded in the
recognizer metadata.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


RELEASE_URL = "https://github.com/SnapXL/RapidOcrNet-ImageSharp/releases/download/v3.5.0"


@dataclass(frozen=True)
class ModelFile:
    """A single downloadable model file."""
    filename: str
    url: str

    @classmethod
    def release(cls, filename: str) -> "ModelFile":
        return cls(filename=filename, url=f"{RELEASE_URL}/{filename}")


@dataclass(frozen=True)
class ModelSuite:
    """Detector, classifier and recognizer that belong together."""
    name: str
    description: str
    version: str
    detector: ModelFile
    classifier: ModelFile
    recognizer: ModelFile
    keys: Optional[ModelFile] = None

    @property
    def files(self) -> Dict[str, ModelFile]:
        files = {
            "detector": self.detector,
            "classifier": self.classifier,
            "recognizer": self.recognizer,
        }
        if self.keys is not None:
            files["keys"] = self.keys
        return files

    @property
    def filenames(self) -> List[str]:
        return [f.filename for f in self.files.values()]


# ---------------------------------------------------------------------------
# Shared detectors / classifier
# ---------------------------------------------------------------------------
CLS_MOBILE = ModelFile.release("ch_ppocr_mobile_v2.0_cls_infer.onnx")

DET_V5_MOBILE = ModelFile.release("ch_PP-OCRv5_mobile_det.onnx")
DET_V5_SERVER = ModelFile.release("ch_PP-OCRv5_server_det.onnx")

DET_V4_MOBILE = ModelFile.release("ch_PP-OCRv4_det_infer.onnx")
DET_V4_SERVER = ModelFile.release("ch_PP-OCRv4_det_server_infer.onnx")
DET_V4_ENGLISH = ModelFile.release("en_PP-OCRv3_det_infer.onnx")
DET_V4_MULTI = ModelFile.release("Multilingual_PP-OCRv3_det_infer.onnx")


def _suite(name, description, version, detector, recognizer):
    return ModelSuite(
        name=name,
        description=description,
        version=version,
        detector=detector,
        classifier=CLS_MOBILE,
        recognizer=ModelFile.release(recognizer),
    )


# ---------------------------------------------------------------------------
# PP-OCRv5
# ---------------------------------------------------------------------------
V5_SUITES = [
    _suite("ch-v5-mobile", "Chinese V5 Mobile", "v5", DET_V5_MOBILE,
           "ch_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("ch-v5-server", "Chinese V5 Server", "v5", DET_V5_SERVER,
           "ch_PP-OCRv5_rec_server_infer.onnx"),
    _suite("en-v5", "English V5 Mobile", "v5", DET_V5_MOBILE,
           "en_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("latin-v5", "Latin V5 Mobile", "v5", DET_V5_MOBILE,
           "latin_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("korean-v5", "Korean V5 Mobile", "v5", DET_V5_MOBILE,
           "korean_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("arabic-v5", "Arabic V5 Mobile", "v5", DET_V5_MOBILE,
           "arabic_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("devanagari-v5", "Devanagari V5 Mobile", "v5", DET_V5_MOBILE,
           "devanagari_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("tamil-v5", "Tamil V5 Mobile", "v5", DET_V5_MOBILE,
           "ta_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("telugu-v5", "Telugu V5 Mobile", "v5", DET_V5_MOBILE,
           "te_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("thai-v5", "Thai V5 Mobile", "v5", DET_V5_MOBILE,
           "th_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("greek-v5", "Greek V5 Mobile", "v5", DET_V5_MOBILE,
           "el_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("cyrillic-v5", "Cyrillic V5 Mobile", "v5", DET_V5_MOBILE,
           "cyrillic_PP-OCRv5_rec_mobile_infer.onnx"),
    _suite("eslav-v5", "East Slavic V5 Mobile", "v5", DET_V5_MOBILE,
           "eslav_PP-OCRv5_rec_mobile_infer.onnx"),
]

# ---------------------------------------------------------------------------
# PP-OCRv4 (v3 detectors for the multilingual recognizers)
# ---------------------------------------------------------------------------
V4_SUITES = [
    _suite("ch-v4-mobile", "Chinese V4 Mobile", "v4", DET_V4_MOBILE,
           "ch_PP-OCRv4_rec_infer.onnx"),
    _suite("ch-v4-server", "Chinese V4 Server", "v4", DET_V4_SERVER,
           "ch_PP-OCRv4_rec_server_infer.onnx"),
    _suite("ch-doc-v4-server", "Chinese Document V4 Server", "v4", DET_V4_SERVER,
           "ch_doc_PP-OCRv4_rec_server_infer.onnx"),
    _suite("cht-v4", "Chinese Traditional V4", "v4", DET_V4_MOBILE,
           "chinese_cht_PP-OCRv3_rec_infer.onnx"),
    _suite("en-v4", "English V4 Mobile", "v4", DET_V4_ENGLISH,
           "en_PP-OCRv4_rec_infer.onnx"),
    _suite("latin-v4", "Latin V4 Mobile", "v4", DET_V4_MULTI,
           "latin_PP-OCRv3_rec_infer.onnx"),
    _suite("japan-v4", "Japanese V4 Mobile", "v4", DET_V4_MOBILE,
           "japan_PP-OCRv4_rec_infer.onnx"),
    _suite("korean-v4", "Korean V4 Mobile", "v4", DET_V4_MOBILE,
           "korean_PP-OCRv4_rec_infer.onnx"),
    _suite("devanagari-v4", "Devanagari V4 Mobile", "v4", DET_V4_MULTI,
           "devanagari_PP-OCRv4_rec_infer.onnx"),
    _suite("tamil-v4", "Tamil V4 Mobile", "v4", DET_V4_MULTI,
           "ta_PP-OCRv4_rec_infer.onnx"),
    _suite("telugu-v4", "Telugu V4 Mobile", "v4", DET_V4_MULTI,
           "te_PP-OCRv4_rec_infer.onnx"),
    _suite("kannada-v4", "Kannada V4 Mobile", "v4", DET_V4_MULTI,
           "ka_PP-OCRv4_rec_infer.onnx"),
    _suite("arabic-v4", "Arabic V4 Mobile", "v4", DET_V4_MULTI,
           "arabic_PP-OCRv4_rec_infer.onnx"),
    _suite("cyrillic-v4", "Cyrillic V4 Mobile", "v4", DET_V4_MULTI,
           "cyrillic_PP-OCRv3_rec_infer.onnx"),
]

# ---------------------------------------------------------------------------
# Master registry
# ---------------------------------------------------------------------------
ALL_SUITES: Dict[str, ModelSuite] = {s.name: s for s in V5_SUITES + V4_SUITES}

DEFAULT_SUITE = "latin-v5"
