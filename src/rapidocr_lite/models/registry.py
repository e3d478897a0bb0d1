"""
Model registry: download, cache, and resolve paths for model suites.

Files are fetched over HTTP into a local directory (one file per model)
and re-fetched when missing or empty.

Usage:
    from rapidocr_lite.models import ModelRegistry

    registry = ModelRegistry()
    paths = registry.get("latin-v5")     # download + resolve
    print(registry.status())             # show what's cached
"""

import io
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

import requests
import tqdm

from .config import ALL_SUITES, ModelFile, ModelSuite

logger = logging.getLogger(__name__)

MODELS_DIR_ENV = "RAPIDOCR_LITE_MODELS_DIR"


def default_models_dir() -> Path:
    env = os.environ.get(MODELS_DIR_ENV)
    if env:
        return Path(env)
    return Path.home() / ".cache" / "rapidocr_lite"


class ModelRegistry:
    """Central manager for all model weights."""

    def __init__(self, models_dir: Optional[Union[str, Path]] = None, timeout: float = 60.0):
        self.models_dir = Path(models_dir) if models_dir is not None else default_models_dir()
        self.timeout = timeout
        self._suites = ALL_SUITES

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, suite_name: str) -> Dict[str, Path]:
        """Return local paths for every file of a suite, downloading if needed.

        Returns:
            Dict mapping file key ("detector", "classifier", "recognizer",
            optionally "keys") to a local Path.
        """
        suite = self._resolve_suite(suite_name)
        return {key: self._ensure_file(mf) for key, mf in suite.files.items()}

    def local_path(self, mf: ModelFile) -> Path:
        return self.models_dir / mf.filename

    def status(self) -> str:
        """Return a human-readable status report."""
        lines = [
            "Model Registry Status",
            f"Directory: {self.models_dir}",
            "=" * 60,
        ]
        for name, suite in self._suites.items():
            lines.append(f"\n{name}  ({suite.description})")
            for key, mf in suite.files.items():
                mark = "OK" if self._is_cached(mf) else "MISSING"
                lines.append(f"  [{mark:>7}]  {key:<12} {mf.filename}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_suite(self, name: str) -> ModelSuite:
        if name not in self._suites:
            available = ", ".join(self._suites)
            raise KeyError(f"Unknown model suite '{name}'. Available: {available}")
        return self._suites[name]

    def _is_cached(self, mf: ModelFile) -> bool:
        path = self.local_path(mf)
        return path.is_file() and path.stat().st_size > 0

    def _ensure_file(self, mf: ModelFile) -> Path:
        """Return the local path, downloading if missing or empty."""
        save_path = self.local_path(mf)
        if self._is_cached(mf):
            return save_path

        if save_path.exists():
            logger.warning("Removing empty model file %s", save_path)
            save_path.unlink()

        logger.info("Downloading %s from %s", mf.filename, mf.url)
        try:
            file_content = self._download_with_progress(mf.url, mf.filename)
        except requests.RequestException as e:
            raise RuntimeError(f"Failed to download {mf.filename}: {e}") from e

        save_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = save_path.with_suffix(save_path.suffix + ".part")
        with open(tmp_path, "wb") as f:
            f.write(file_content)
        tmp_path.replace(save_path)
        logger.info("Saved to %s", save_path)
        return save_path

    def _download_with_progress(self, url: str, name: Optional[str] = None) -> bytes:
        """Download file with progress bar."""
        resp = requests.get(url, stream=True, allow_redirects=True, timeout=self.timeout)
        resp.raise_for_status()

        total = int(resp.headers.get("content-length", 0))
        bio = io.BytesIO()

        with tqdm.tqdm(
            desc=name,
            total=total,
            unit="b",
            unit_scale=True,
            unit_divisor=1024
        ) as bar:
            for chunk in resp.iter_content(chunk_size=65536):
                bar.update(len(chunk))
                bio.write(chunk)

        return bio.getvalue()
