from __future__ import annotations

import uuid
from pathlib import Path
from typing import Protocol

import structlog
from werkzeug.utils import secure_filename

from ..core.exceptions import DependencyError, ValidationError

log = structlog.get_logger(__name__)


class FileStore(Protocol):
    """Opaque blob storage for dossier documents."""

    def store(self, filename: str, data: bytes) -> str:
        """Persist ``data`` and return its public URL."""

        raise NotImplementedError

    def delete(self, url: str) -> None:
        """Remove the blob behind ``url``; raises DependencyError on failure."""

        raise NotImplementedError


class LocalFileStore(FileStore):
    """Stores files under ``root_dir`` and serves them from ``base_url``."""

    def __init__(self, root_dir: str | Path, base_url: str = "/files"):
        self._root = Path(root_dir)
        self._base_url = base_url.rstrip("/")

    def _path_for(self, url: str) -> Path:
        prefix = f"{self._base_url}/"
        if not url.startswith(prefix):
            raise DependencyError(f"URL is not managed by this file store: {url}")
        name = secure_filename(url[len(prefix):])
        if not name:
            raise DependencyError(f"Invalid file URL: {url}")
        return self._root / name

    def store(self, filename: str, data: bytes) -> str:
        safe = secure_filename(filename or "")
        if not safe:
            raise ValidationError("Invalid file name")
        name = f"{uuid.uuid4().hex}_{safe}"
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / name).write_bytes(data)
        except OSError as e:
            raise DependencyError(f"Could not store file: {e}") from e
        log.info("file_stored", name=name, size=len(data))
        return f"{self._base_url}/{name}"

    def delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            path.unlink()
        except OSError as e:
            raise DependencyError(f"Could not delete file: {e}") from e
        log.info("file_deleted", name=path.name)
