"""Prompt templates for the studio orchestrators.

Kept in one file so copy and style directives can be tuned without touching
the services.
"""
from __future__ import annotations

from typing import Optional

from app.schemas.assets import Language

LANGUAGE_DIRECTIVES = {
    Language.TURKISH: "TURKISH (Native, Professional Tone)",
    Language.ENGLISH: "ENGLISH (Professional, Native Tone)",
}


def build_analyzer_system_prompt(language: Language) -> str:
    """
    System instruction for the product analysis call.

    Args:
        language: Output language of every generated text field

    Returns:
        System prompt string
    """
    return f"""You are a world-class e-commerce product strategist and copywriter.
Your task is to conduct a DEEP ANALYSIS of the provided product images and technical documents.

OUTPUT REQUIREMENTS:
1. Title: Create a compelling, high-converting product title (max 100 chars).
2. Description: Write a rich, storytelling-style description that highlights emotional benefits and technical value.
3. Features: List 5-7 distinct, high-impact features. EACH feature must be a standalone string, detailed and persuasive.
4. Technical Details: Extract specific technical specs (dimensions, material, weight, power, etc.).
5. Price: Estimate a premium market price based on perceived quality.
6. Category: Precise e-commerce category.
7. Tags: 10+ SEO-optimized tags.

Language: {LANGUAGE_DIRECTIVES[language]}.
Return strictly valid JSON."""


def build_analysis_instruction(guidance: Optional[str] = None) -> str:
    """User turn text sent after the photos and catalog documents."""
    instruction = (
        "Bu ürünü derinlemesine analiz et. Pazar araştırması yap, benzer ürünlerin "
        "fiyatlarını bul. Teknik detayları çıkar. Özellikle eklenen katalog belgelerini "
        "(varsa) referans alarak teknik özellikler (barkod, boyutlar, ağırlık vb.) "
        "bölümlerini doldur."
    )
    guidance = (guidance or "").strip()
    return f"{instruction} {guidance}" if guidance else instruction


def build_studio_image_prompt(prompt: str) -> str:
    return (
        f"High-end professional e-commerce studio photography: {prompt.strip()}. "
        "Clean minimalist background, 8k resolution, cinematic lighting."
    )


def build_image_edit_prompt(prompt: str) -> str:
    return (
        f"Modify this product image: {prompt.strip()}. "
        "Keep product details intact but change surroundings/style."
    )


def build_video_prompt(prompt: str) -> str:
    return (
        f"Professional cinematic product reveal video: {prompt.strip()}. "
        "Slow motion, high production value."
    )
