"""Gallery asset schemas and generation enums."""
from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.product import CamelModel


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    PORTRAIT_2_3 = "2:3"
    LANDSCAPE_3_2 = "3:2"
    PORTRAIT_3_4 = "3:4"
    LANDSCAPE_4_3 = "4:3"
    PORTRAIT_9_16 = "9:16"
    LANDSCAPE_16_9 = "16:9"
    ULTRAWIDE_21_9 = "21:9"


class ImageSize(str, Enum):
    K1 = "1K"
    K2 = "2K"
    K4 = "4K"


class VideoAspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class Language(str, Enum):
    TURKISH = "tr"
    ENGLISH = "en"


class AssetType(str, Enum):
    ORIGINAL = "original"
    GENERATED = "generated"
    EDITED = "edited"


class SlotKind(str, Enum):
    PHOTO = "photo"
    CATALOG = "catalog"


class ImageAsset(CamelModel):
    """An uploaded or generated image; ``url`` is a renderable data URI."""

    id: str
    url: str
    type: AssetType
    prompt: Optional[str] = None
    aspect_ratio: Optional[str] = None
    size: Optional[str] = None

    def inline_payload(self) -> tuple[str, str]:
        """Split the data URI into ``(mime_type, base64_data)``."""
        header, _, data = self.url.partition(",")
        mime_type = header.removeprefix("data:").split(";")[0] or "image/png"
        return mime_type, data


class VideoAsset(CamelModel):
    """A generated video; ``url`` points at the session content endpoint."""

    id: str
    url: str
    type: Literal["veo-generation"] = "veo-generation"
    prompt: str
    mime_type: str = "video/mp4"


class UploadSlot(BaseModel):
    """A decoded user upload waiting to be sent for analysis."""

    id: str
    filename: str
    mime_type: str
    data: str = Field(..., description="Base64 payload without data URI header", repr=False)
    size: int = 0

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"
