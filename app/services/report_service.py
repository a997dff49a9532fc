"""Report exporter: rasterise the result panel and wrap it in a single-page PDF."""
from __future__ import annotations

import base64
import io
import logging
import re
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from app.core.config import get_settings
from app.core.exceptions import InputValidationError
from app.schemas.assets import ImageAsset
from app.schemas.product import ProductContent
from app.services.session_store import StudioSession

logger = logging.getLogger(__name__)

FALLBACK_FILENAME = "urun-analiz"
PAGE_WIDTH = A4[0]  # 210 mm in points

TECHNICAL_LABELS = {
    "brand": "Marka",
    "barcode": "Barkod",
    "productCode": "Ürün Kodu",
    "production": "Üretim",
    "weight": "Ağırlık",
    "productDimensions": "Ürün Boyutları",
    "boxDimensions": "Kutu Boyutları",
    "ageRange": "Yaş Aralığı",
    "gender": "Cinsiyet",
}

INK = (15, 23, 42)
MUTED = (100, 116, 139)
ACCENT = (79, 70, 229)
BACKGROUND = (255, 255, 255)

_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def report_filename(product: Optional[ProductContent]) -> str:
    """``{title}.pdf`` with filesystem-unsafe characters removed."""
    title = _UNSAFE_FILENAME.sub(" ", product.title if product else "")
    title = " ".join(title.split())[:120].strip(" .")
    return f"{title or FALLBACK_FILENAME}.pdf"


def page_size_for(image_size: Tuple[int, int], page_width: float = PAGE_WIDTH) -> Tuple[float, float]:
    """Fixed page width; height keeps the raster's aspect ratio."""
    width, height = image_size
    return page_width, height * page_width / width


def decode_data_uri(url: str) -> Optional[Image.Image]:
    _, _, payload = url.partition(",")
    try:
        image = Image.open(io.BytesIO(base64.b64decode(payload)))
        image.load()
    except (ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning("[REPORT] Selected image could not be decoded, rendering without it: %s", e)
        return None
    return image.convert("RGB")


class PanelRenderer:
    """Draws the product result panel onto a Pillow image."""

    def __init__(self, width: int = 600, scale: int = 2, font_path: Optional[str] = None) -> None:
        self.scale = scale
        self.width = width * scale
        self.padding = 32 * scale
        self.font_path = font_path
        self.fonts = {
            "title": self._font(26),
            "heading": self._font(15),
            "body": self._font(12),
            "small": self._font(10),
        }
        self._measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

    def _font(self, size: int) -> ImageFont.ImageFont:
        if self.font_path:
            return ImageFont.truetype(self.font_path, size * self.scale)
        return ImageFont.load_default(size=size * self.scale)

    def _wrap(self, text: str, font: ImageFont.ImageFont, max_width: int) -> List[str]:
        lines: List[str] = []
        for paragraph in (text or "").splitlines() or [""]:
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if current and self._measure.textlength(candidate, font=font) > max_width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def _line_height(self, font: ImageFont.ImageFont) -> int:
        top, bottom = font.getbbox("ÇĞİÖŞÜgjy")[1::2]
        return int((bottom - top) * 1.4)

    def render(self, product: ProductContent, image: Optional[Image.Image] = None) -> Image.Image:
        content_width = self.width - 2 * self.padding
        blocks: List[Tuple[str, object, object]] = []

        def text(value: str, font_key: str, color=INK, gap: int = 6) -> None:
            font = self.fonts[font_key]
            blocks.append(("text", (font, color), self._wrap(value, font, content_width)))
            blocks.append(("gap", gap * self.scale, None))

        if image is not None:
            ratio = min(content_width / image.width, (360 * self.scale) / image.height)
            resized = image.resize((max(1, int(image.width * ratio)), max(1, int(image.height * ratio))))
            blocks.append(("image", resized, None))
            blocks.append(("gap", 16 * self.scale, None))

        text(product.category, "small", ACCENT, gap=4)
        text(product.title, "title", gap=8)
        text(product.suggested_price, "heading", ACCENT, gap=14)
        text(product.description, "body", gap=14)
        if product.features:
            text("Özellikler", "heading", gap=6)
            for feature in product.features:
                text(f"• {feature}", "body", gap=4)
            blocks.append(("gap", 10 * self.scale, None))
        text("Teknik Özet", "heading", gap=6)
        for key, value in product.technical_summary().items():
            text(f"{TECHNICAL_LABELS[key]}: {value or '-'}", "body", gap=2)
        blocks.append(("gap", 10 * self.scale, None))
        if product.tags:
            text("Etiketler", "heading", gap=6)
            text(", ".join(f"#{tag}" for tag in product.tags), "small", MUTED, gap=12)
        if product.market_trends:
            text("Pazar Trendleri", "heading", gap=6)
            for trend in product.market_trends:
                text(f"• {trend}", "body", gap=4)
            blocks.append(("gap", 10 * self.scale, None))
        if product.grounding_urls:
            text("Kaynaklar", "heading", gap=6)
            for source in product.grounding_urls:
                text(f"{source.title or source.uri} ({source.uri})", "small", MUTED, gap=2)

        height = 2 * self.padding
        for kind, value, lines in blocks:
            if kind == "image":
                height += value.height
            elif kind == "gap":
                height += value
            else:
                height += self._line_height(value[0]) * len(lines)

        canvas = Image.new("RGB", (self.width, height), BACKGROUND)
        draw = ImageDraw.Draw(canvas)
        y = self.padding
        for kind, value, lines in blocks:
            if kind == "image":
                canvas.paste(value, (self.padding + (content_width - value.width) // 2, y))
                y += value.height
            elif kind == "gap":
                y += value
            else:
                font, color = value
                step = self._line_height(font)
                for line in lines:
                    draw.text((self.padding, y), line, font=font, fill=color)
                    y += step
        return canvas


def raster_to_pdf(raster: Image.Image, title: str = "") -> bytes:
    """Embed the raster on one page of fixed width, preserving its aspect ratio."""
    page_width, page_height = page_size_for(raster.size)
    buffer = io.BytesIO()
    pdf = Canvas(buffer, pagesize=(page_width, page_height))
    pdf.setTitle(title)
    pdf.drawImage(ImageReader(raster), 0, 0, width=page_width, height=page_height)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class ReportService:
    """Builds the downloadable PDF report for a session."""

    def __init__(self, renderer: Optional[PanelRenderer] = None) -> None:
        self.renderer = renderer or PanelRenderer(font_path=get_settings().report_font_path)

    def export(self, session: StudioSession) -> Tuple[str, bytes]:
        """
        Render the session's result panel as a PDF.

        Returns:
            Tuple of (filename, pdf bytes)

        Raises:
            InputValidationError: The session has no analysed product yet
        """
        if session.product is None:
            raise InputValidationError("Rapor için önce ürün analizi yapın.")
        selected: Optional[ImageAsset] = session.selected_image
        image = decode_data_uri(selected.url) if selected else None
        raster = self.renderer.render(session.product, image)
        pdf_bytes = raster_to_pdf(raster, title=session.product.title)
        filename = report_filename(session.product)
        logger.info(
            "[REPORT] session=%s file=%s raster=%sx%s bytes=%s",
            session.id,
            filename,
            raster.width,
            raster.height,
            len(pdf_bytes),
        )
        return filename, pdf_bytes
