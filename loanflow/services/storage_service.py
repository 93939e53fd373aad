from __future__ import annotations

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


class LocalDocumentStorage:
    """Document storage backed by a local directory.

    ``upload_file`` is the whole contract the engine relies on; swap this for
    an object-store client in deployments that need one.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    async def upload_file(self, content: bytes, *, path: str, content_type: str) -> str:
        target = (self._root / path).with_suffix(_EXTENSIONS.get(content_type, ".bin"))
        await asyncio.to_thread(self._write, target, content)
        logger.info("document_stored path=%s bytes=%d", target, len(content))
        return target.resolve().as_uri()

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
