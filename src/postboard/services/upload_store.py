"""Local disk storage for files attached to posts.

Learn: Uploads are validated (content type whitelist, size cap) and
written under settings.upload_dir with a generated name. The extension
comes from the validated content type, never from the client's
filename: StaticFiles picks the served Content-Type from the extension,
so a client-chosen ".html" would turn a "text/plain" upload into a page
running on our origin. main.py serves that directory at /uploads/, so
the stored reference doubles as the public URL.
"""

import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

from postboard.config import Settings, settings
from postboard.errors import BadRequestError

URL_PREFIX = "/uploads"

SUFFIXES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
}


@dataclass
class IncomingFile:
    """An uploaded file as received from the client."""
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes


class UploadStore:
    """Validates and persists uploaded files."""

    def __init__(self, root: Path, max_bytes: int, allowed_types: list[str]):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_types = set(allowed_types)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "UploadStore":
        return cls(
            root=Path(config.upload_dir),
            max_bytes=config.max_upload_bytes,
            allowed_types=config.allowed_upload_types,
        )

    def validate(self, content_type: str | None, data: bytes) -> None:
        if content_type not in self.allowed_types:
            allowed = ", ".join(sorted(self.allowed_types))
            raise BadRequestError(f"Invalid file type. Allowed types: {allowed}")
        if len(data) > self.max_bytes:
            raise BadRequestError(
                f"File too large. Maximum size is {self.max_bytes} bytes"
            )
        if not data:
            raise BadRequestError("Uploaded file is empty")

    def _generate_name(self, content_type: str) -> str:
        # Types without a known suffix are stored bare (served as octet-stream)
        suffix = SUFFIXES.get(content_type, "")
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{suffix}"

    async def save(self, upload: IncomingFile) -> str:
        """Validate and write the file. Returns its public URL path."""
        self.validate(upload.content_type, upload.data)
        name = self._generate_name(upload.content_type)
        self.root.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.root / name, "wb") as buffer:
            await buffer.write(upload.data)
        return f"{URL_PREFIX}/{name}"

