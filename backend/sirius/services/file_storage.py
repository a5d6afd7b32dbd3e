"""Local file store for uploaded feed files and generated feed output.

Paths handed around the application are relative to `settings.upload_dir`.
Disk I/O runs in a worker thread so request handlers stay non-blocking.
"""

import asyncio
import logging
from pathlib import Path

from sirius.config import settings

logger = logging.getLogger("sirius.file_storage")


def _resolve(relative_path: str) -> Path:
    root = Path(settings.upload_dir).resolve()
    path = (root / relative_path).resolve()
    if root not in path.parents:
        raise ValueError(f"Path escapes upload directory: {relative_path!r}")
    return path


def _write(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


async def save_file(relative_path: str, content: bytes) -> str:
    path = _resolve(relative_path)
    await asyncio.to_thread(_write, path, content)
    logger.info("Stored %d bytes at %s", len(content), relative_path)
    return relative_path


async def read_file(relative_path: str) -> bytes:
    return await asyncio.to_thread(_resolve(relative_path).read_bytes)


async def delete_file(relative_path: str) -> bool:
    path = _resolve(relative_path)
    if not path.exists():
        return False
    await asyncio.to_thread(path.unlink)
    logger.info("Deleted %s", relative_path)
    return True
