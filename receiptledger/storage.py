"""
Receipt image storage on the local filesystem.

Objects live under ``root`` and are addressed by relative paths of the form
``<profile_id>/<epoch_millis>.<ext>``; ``public_base_url`` is where the app
serves them.
"""
from __future__ import annotations

import logging
import pathlib
import time
from typing import Optional

from receiptledger.errors import CollaboratorError, InvalidArgument

logger = logging.getLogger(__name__)


def receipt_object_path(profile_id: str, filename: Optional[str], now_ms: Optional[int] = None) -> str:
    """Build a collision-resistant object path namespaced by profile."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    ext = ""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
    suffix = f".{ext}" if ext.isalnum() else ""
    return f"{profile_id}/{stamp}{suffix}"


class LocalObjectStorage:
    def __init__(self, root: str | pathlib.Path, public_base_url: str):
        self.root = pathlib.Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> pathlib.Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise InvalidArgument(f"Invalid storage path: {path}")
        return target

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    def put(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        if target.exists():
            raise CollaboratorError(f"Object already exists: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise CollaboratorError(f"Failed to store receipt image: {exc}") from exc
        logger.info("Stored %s (%s, %d bytes)", path, content_type, len(data))
        return self.public_url(path)

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise CollaboratorError(f"Failed to read receipt image: {exc}") from exc

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise CollaboratorError(f"Failed to delete receipt image: {exc}") from exc
        logger.info("Deleted %s", path)
