"""In-memory studio sessions.

A ``StudioSession`` holds everything one merchant works on: upload slots, the
analysed product, the image gallery and generated videos. Sessions live only in
process memory; restarting the service discards them.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Dict, List, Optional

from app.core.config import get_settings
from app.core.exceptions import (
    AssetNotFoundError,
    BusyError,
    SessionNotFoundError,
    SessionResetError,
)
from app.schemas.assets import ImageAsset, SlotKind, UploadSlot, VideoAsset
from app.schemas.product import ProductContent
from app.schemas.studio import SessionSnapshot, SlotSummary

logger = logging.getLogger(__name__)

# Action categories; one running action per category per session.
ANALYSIS = "analysis"
IMAGE = "image"
VIDEO = "video"
ACTION_CATEGORIES = (ANALYSIS, IMAGE, VIDEO)


class CancelToken:
    """Cancellation flag shared between a running video job and its session."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True as soon as cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True


class StudioSession:
    """Application state for one product session."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.product: Optional[ProductContent] = None
        self.photos: List[UploadSlot] = []
        self.catalogs: List[UploadSlot] = []
        self.images: List[ImageAsset] = []
        self.videos: List[VideoAsset] = []
        self.selected_index = 0
        self._video_content: Dict[str, bytes] = {}
        self._locks = {category: asyncio.Lock() for category in ACTION_CATEGORIES}
        self._busy: Dict[str, str] = {}
        self._video_token: Optional[CancelToken] = None
        # Bumped by reset(); in-flight actions compare it before writing back.
        self.generation = 0
        self.last_access = time.monotonic()

    # State

    @property
    def state(self) -> str:
        if ANALYSIS in self._busy:
            return "analyzing"
        return "has_product" if self.product is not None else "no_product"

    def is_busy(self, category: str) -> bool:
        return self._locks[category].locked()

    @property
    def running(self) -> bool:
        return any(lock.locked() for lock in self._locks.values())

    def touch(self) -> None:
        self.last_access = time.monotonic()

    @asynccontextmanager
    async def busy(self, category: str, message: str) -> AsyncIterator[None]:
        """
        Hold the category's lock for the duration of one action.

        Raises:
            BusyError: If an action of the same category is already running
        """
        lock = self._locks[category]
        if lock.locked():
            raise BusyError(f"Bu işlem zaten devam ediyor: {self._busy.get(category, category)}")
        async with lock:
            self._busy[category] = message
            try:
                yield
            finally:
                self._busy.pop(category, None)

    def ensure_generation(self, generation: int) -> None:
        """
        Refuse to commit a result started before the latest reset.

        Raises:
            SessionResetError: If the session was reset since ``generation`` was read
        """
        if generation != self.generation:
            logger.warning("[SESSION] %s: discarding result started before reset", self.id)
            raise SessionResetError("Oturum sıfırlandı; işlemin sonucu kaydedilmedi.")

    # Upload slots

    def slots(self, kind: SlotKind) -> List[UploadSlot]:
        return self.photos if kind == SlotKind.PHOTO else self.catalogs

    def add_slot(self, kind: SlotKind, slot: UploadSlot) -> None:
        self.slots(kind).append(slot)

    def remove_slot(self, kind: SlotKind, slot_id: str) -> None:
        slots = self.slots(kind)
        for i, slot in enumerate(slots):
            if slot.id == slot_id:
                del slots[i]
                return
        raise AssetNotFoundError(f"Yükleme bulunamadı: {slot_id}")

    # Product and gallery

    def set_product(self, product: ProductContent, originals: List[ImageAsset]) -> None:
        """Replace the product record and restart the gallery from the uploaded photos."""
        self.product = product
        self.images = list(originals)
        self.selected_index = 0

    @property
    def selected_image(self) -> Optional[ImageAsset]:
        if 0 <= self.selected_index < len(self.images):
            return self.images[self.selected_index]
        return None

    def image_at(self, index: int) -> ImageAsset:
        if not 0 <= index < len(self.images):
            raise AssetNotFoundError(f"Geçersiz görsel indeksi: {index}")
        return self.images[index]

    def append_image(self, asset: ImageAsset, select: bool = True) -> None:
        self.images.append(asset)
        if select:
            self.selected_index = len(self.images) - 1

    def select_image(self, index: int) -> ImageAsset:
        asset = self.image_at(index)
        self.selected_index = index
        return asset

    def append_video(self, asset: VideoAsset, content: bytes) -> None:
        self._video_content[asset.id] = content
        self.videos.append(asset)

    def video_content(self, video_id: str) -> tuple[VideoAsset, bytes]:
        for asset in self.videos:
            if asset.id == video_id:
                return asset, self._video_content[video_id]
        raise AssetNotFoundError(f"Video bulunamadı: {video_id}")

    # Video job cancellation

    def begin_video_job(self) -> CancelToken:
        self._video_token = CancelToken()
        return self._video_token

    def end_video_job(self, token: CancelToken) -> None:
        if self._video_token is token:
            self._video_token = None

    def cancel_video(self) -> bool:
        """Request cancellation of the running video job; False if none is running."""
        if self._video_token is None or self._video_token.cancelled:
            return False
        self._video_token.cancel()
        logger.info("[SESSION] %s: video job cancellation requested", self.id)
        return True

    # Lifecycle

    def reset(self, keep_assets: bool = False) -> None:
        """
        Start a new product session.

        Clears the product and both upload slot collections. Unless
        ``keep_assets`` is set, the image/video history goes too and any running
        video job is cancelled. Analysis or image calls still awaiting the
        provider are discarded when they finish (see ``ensure_generation``).
        """
        self.generation += 1
        self.product = None
        self.photos.clear()
        self.catalogs.clear()
        if not keep_assets:
            self.cancel_video()
            self.images = []
            self.videos = []
            self._video_content.clear()
            self.selected_index = 0
        logger.info("[SESSION] %s: reset (keep_assets=%s)", self.id, keep_assets)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            state=self.state,
            busy=dict(self._busy),
            product=self.product,
            photos=[_summary(s) for s in self.photos],
            catalogs=[_summary(s) for s in self.catalogs],
            images=list(self.images),
            videos=list(self.videos),
            selected_index=self.selected_index,
        )


def _summary(slot: UploadSlot) -> SlotSummary:
    return SlotSummary(id=slot.id, filename=slot.filename, mime_type=slot.mime_type, size=slot.size)


class SessionStore:
    """
    Process-local registry of studio sessions.

    Sessions idle for longer than ``ttl_seconds`` are evicted on the next
    ``create()`` or ``get()``; sessions with a running action are kept.
    """

    def __init__(self, ttl_seconds: Optional[float] = None) -> None:
        self._sessions: Dict[str, StudioSession] = {}
        self.ttl_seconds = get_settings().session_ttl_seconds if ttl_seconds is None else ttl_seconds

    def create(self) -> StudioSession:
        self.evict_idle()
        session = StudioSession()
        self._sessions[session.id] = session
        logger.info("[SESSION] Created session %s (total=%s)", session.id, len(self._sessions))
        return session

    def get(self, session_id: str) -> StudioSession:
        self.evict_idle()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Oturum bulunamadı: {session_id}")
        session.touch()
        return session

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        self._drop(session)
        logger.info("[SESSION] Deleted session %s", session_id)

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Drop sessions idle longer than the TTL; return how many were removed."""
        now = time.monotonic() if now is None else now
        expired = [
            session
            for session in self._sessions.values()
            if not session.running and now - session.last_access > self.ttl_seconds
        ]
        for session in expired:
            self._drop(session)
        if expired:
            logger.info("[SESSION] Evicted %s idle session(s) (total=%s)", len(expired), len(self._sessions))
        return len(expired)

    def _drop(self, session: StudioSession) -> None:
        session.cancel_video()
        del self._sessions[session.id]

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache
def get_session_store() -> SessionStore:
    """Return the process-wide session store."""
    return SessionStore()
