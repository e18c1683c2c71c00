from __future__ import annotations

import io
import logging
import time
import uuid
from pathlib import Path
from typing import Protocol

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from ..core.exceptions import EvidenceUploadError

logger = logging.getLogger(__name__)


class EvidenceStore(Protocol):
    """Evidence (photo) store port. Returns an opaque URL for the upload."""

    def upload(self, data: bytes, name_hint: str) -> str:
        raise NotImplementedError


class LocalEvidenceStore(EvidenceStore):
    """Writes evidence photos to a directory served under ``base_url``."""

    def __init__(self, root_dir: str | Path, *, base_url: str = "/evidence"):
        self._root = Path(root_dir)
        self._base_url = base_url.rstrip("/")

    def upload(self, data: bytes, name_hint: str) -> str:
        if not data:
            raise EvidenceUploadError("Evidence photo is empty")

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise EvidenceUploadError(f"Evidence is not a readable image: {e}") from e

        name = secure_filename(name_hint or "") or "photo"
        filename = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{name}"

        try:
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / filename).write_bytes(data)
        except OSError as e:
            raise EvidenceUploadError(f"Could not store evidence photo: {e}") from e

        logger.info("stored evidence %s (%d bytes)", filename, len(data))
        return f"{self._base_url}/{filename}"
