"""Request/response schemas for the studio API."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.assets import (
    AspectRatio,
    ImageAsset,
    ImageSize,
    Language,
    SlotKind,
    VideoAspectRatio,
    VideoAsset,
)
from app.schemas.product import CamelModel, ProductContent


class AnalyzeRequest(BaseModel):
    """Analysis request; photos and catalogs come from the session upload slots."""

    language: Language = Field(default=Language.TURKISH, description="Output language")
    guidance: Optional[str] = Field(
        None,
        description="Free-text hints appended to the analysis instruction",
        max_length=2000,
    )

    class Config:
        json_schema_extra = {
            "example": {"language": "tr", "guidance": "Hedef kitle: 3-6 yaş çocuklar"}
        }


class ImageGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Scene description")
    aspect_ratio: AspectRatio = Field(default=AspectRatio.SQUARE)
    size: ImageSize = Field(default=ImageSize.K1)

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "product on a marble countertop next to a window",
                "aspect_ratio": "4:3",
                "size": "2K",
            }
        }


class ImageEditRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="How to change the surroundings/style")
    index: Optional[int] = Field(
        None, ge=0, description="Gallery index to edit; defaults to the selected image"
    )


class SelectImageRequest(BaseModel):
    index: int = Field(..., ge=0)


class VideoGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Video scenario")
    aspect_ratio: VideoAspectRatio = Field(default=VideoAspectRatio.LANDSCAPE)
    use_selected_image: bool = Field(
        default=True, description="Seed the video with the currently selected image"
    )


class SlotSummary(BaseModel):
    id: str
    filename: str
    mime_type: str
    size: int


class UploadResult(BaseModel):
    kind: SlotKind
    accepted: List[SlotSummary] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list, description="Filenames that failed to decode")


class SessionSnapshot(CamelModel):
    """Everything the front end needs to render a session."""

    session_id: str
    state: str = Field(..., description="no_product | analyzing | has_product")
    busy: Dict[str, str] = Field(
        default_factory=dict, description="Running action categories and their loading messages"
    )
    product: Optional[ProductContent] = None
    photos: List[SlotSummary] = Field(default_factory=list)
    catalogs: List[SlotSummary] = Field(default_factory=list)
    images: List[ImageAsset] = Field(default_factory=list)
    videos: List[VideoAsset] = Field(default_factory=list)
    selected_index: int = 0
