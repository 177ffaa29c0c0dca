"""Durable media storage for uploaded audio and attachments.

Files are written under a single uploads directory with collision-resistant
generated names (``<epoch-ms>-<random><ext>``) and exposed through a public
URL prefix. Writes use exclusive-create mode, so concurrent uploads never
overwrite each other.
"""

import asyncio
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """A file persisted by :class:`MediaStore`."""

    stored_name: str
    original_name: str
    url: str
    mime_type: str
    path: Path

    def descriptor(self) -> dict:
        """Attachment descriptor as stored on a note."""
        return {
            "filename": self.stored_name,
            "original_name": self.original_name,
            "file_url": self.url,
            "mime_type": self.mime_type,
        }


class MediaStore:
    """Writes and reads uploaded files.

    Args:
        root: Directory that receives every stored file.
        url_prefix: Public URL prefix the directory is served under.
    """

    def __init__(self, root: str | Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    @staticmethod
    def generate_name(original_name: str) -> str:
        """Return ``<epoch-ms>-<9 random digits><ext>`` for *original_name*."""
        ext = PurePath(original_name or "").suffix.lower()
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}{ext}"

    def url_for(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"

    def path_for(self, stored_name: str) -> Path:
        # Stored names are generated here; reject anything path-like
        if PurePath(stored_name).name != stored_name:
            raise ValueError(f"Invalid stored name: {stored_name!r}")
        return self.root / stored_name

    def _write_exclusive(self, data: bytes, original_name: str) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        name = self.generate_name(original_name)
        try:
            with open(self.root / name, "xb") as handle:
                handle.write(data)
        except FileExistsError:
            ext = PurePath(original_name or "").suffix.lower()
            name = f"{uuid.uuid4().hex}{ext}"
            with open(self.root / name, "xb") as handle:
                handle.write(data)
        return self.root / name

    async def save(self, data: bytes, original_name: str, mime_type: str) -> StoredFile:
        """Persist *data* under a generated name and return its descriptor."""
        path = await asyncio.to_thread(self._write_exclusive, data, original_name)
        logger.debug("Stored %s as %s (%d bytes)", original_name, path.name, len(data))
        return StoredFile(
            stored_name=path.name,
            original_name=original_name,
            url=self.url_for(path.name),
            mime_type=mime_type,
            path=path,
        )

    async def read(self, stored_name: str) -> bytes:
        """Read a stored file back from disk."""
        return await asyncio.to_thread(self.path_for(stored_name).read_bytes)
