from __future__ import annotations

import asyncio
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

RECEIPT_MEDIA_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
}
_HANDLE_RE = re.compile(r"^\d{10,16}-\d{1,9}\.(jpg|jpeg|png|pdf)$")


class ReceiptError(Exception):
    pass


class ReceiptTypeError(ReceiptError):
    pass


class ReceiptTooLargeError(ReceiptError):
    pass


class ReceiptEmptyError(ReceiptError):
    pass


class ReceiptNotFoundError(ReceiptError):
    pass


@dataclass(frozen=True, slots=True)
class StoredReceipt:
    path: Path
    media_type: str


def receipt_extension(filename: str | None) -> str:
    extension = Path(filename or "").suffix.lower()
    if extension not in RECEIPT_MEDIA_TYPES:
        raise ReceiptTypeError
    return extension


def build_receipt_handle(extension: str, *, now_ms: int | None = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{now_ms}-{secrets.randbelow(10**9)}{extension}"


def _write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # "x" refuses to clobber an existing receipt on a handle collision.
    with path.open("xb") as handle:
        handle.write(content)


async def store_receipt(
    *,
    filename: str | None,
    content: bytes,
    upload_dir: Path,
    max_bytes: int,
) -> str:
    extension = receipt_extension(filename)
    if not content:
        raise ReceiptEmptyError
    if len(content) > max_bytes:
        raise ReceiptTooLargeError

    receipt_handle = build_receipt_handle(extension)
    await asyncio.to_thread(_write_bytes, upload_dir / receipt_handle, content)
    logger.info("receipt_stored", receipt=receipt_handle, size_bytes=len(content))
    return receipt_handle


def resolve_receipt(receipt_handle: str, *, upload_dir: Path) -> StoredReceipt:
    if _HANDLE_RE.fullmatch(receipt_handle.lower()) is None:
        raise ReceiptNotFoundError
    path = upload_dir / receipt_handle
    if not path.is_file():
        raise ReceiptNotFoundError
    return StoredReceipt(path=path, media_type=RECEIPT_MEDIA_TYPES[path.suffix.lower()])


async def discard_receipt(receipt_handle: str | None, *, upload_dir: Path) -> None:
    if not receipt_handle:
        return
    try:
        await asyncio.to_thread((upload_dir / receipt_handle).unlink, True)
    except OSError as exc:
        logger.warning("receipt_discard_failed", receipt=receipt_handle, error=str(exc))
