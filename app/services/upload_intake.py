"""Upload intake: turn user-selected files into base64 upload slots."""
from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import uuid
from typing import List, Optional, Protocol, Sequence

from app.schemas.assets import SlotKind, UploadSlot
from app.services.session_store import StudioSession

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class UploadedFile(Protocol):
    """The part of ``fastapi.UploadFile`` the intake relies on."""

    filename: Optional[str]
    content_type: Optional[str]

    async def read(self) -> bytes: ...


def resolve_mime_type(filename: str, content_type: Optional[str]) -> str:
    """Prefer the declared content type, then a guess from the filename."""
    if content_type and content_type != DEFAULT_MIME_TYPE:
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or content_type or DEFAULT_MIME_TYPE


async def decode_upload(file: UploadedFile) -> UploadSlot:
    """Read one file and encode it as a self-contained upload slot."""
    filename = file.filename or "upload"
    raw = await file.read()
    return UploadSlot(
        id=uuid.uuid4().hex,
        filename=filename,
        mime_type=resolve_mime_type(filename, file.content_type),
        data=base64.b64encode(raw).decode("ascii"),
        size=len(raw),
    )


async def intake_uploads(
    session: StudioSession, kind: SlotKind, files: Sequence[UploadedFile]
) -> tuple[List[UploadSlot], List[str]]:
    """
    Decode a batch of files concurrently and append them to a session slot collection.

    No size or type checks are applied. A file that fails to decode is dropped
    from the batch and logged; the rest are still appended.

    Args:
        session: Target session
        kind: ``photo`` or ``catalog`` collection
        files: Uploaded files

    Returns:
        Tuple of (accepted slots, filenames that were dropped)
    """
    accepted: List[UploadSlot] = []
    dropped: List[str] = []

    async def _decode_and_append(file: UploadedFile) -> None:
        try:
            slot = await decode_upload(file)
        except (OSError, ValueError) as e:
            logger.warning("[UPLOAD] Dropping %s: %s", file.filename, e)
            dropped.append(file.filename or "upload")
            return
        # Appended as each decode completes, so batch order is not guaranteed
        session.add_slot(kind, slot)
        accepted.append(slot)

    await asyncio.gather(*(_decode_and_append(f) for f in files))
    logger.info(
        "[UPLOAD] session=%s kind=%s accepted=%s dropped=%s",
        session.id,
        kind.value,
        len(accepted),
        len(dropped),
    )
    return accepted, dropped
