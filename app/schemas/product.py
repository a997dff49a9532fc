"""Product content schemas returned by the analysis orchestrator."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with the provider's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GroundingSource(CamelModel):
    """A web citation returned by search grounding."""

    uri: str = Field(..., description="Source URL")
    title: Optional[str] = Field(None, description="Source page title")


class CompetitorPrice(CamelModel):
    source: str
    price: str
    url: str


# Order matters: this is the order of the technical summary in the report.
TECHNICAL_FIELDS: tuple[str, ...] = (
    "brand",
    "barcode",
    "product_code",
    "production",
    "weight",
    "product_dimensions",
    "box_dimensions",
    "age_range",
    "gender",
)


class ProductContent(CamelModel):
    """Marketing copy and technical attributes for one analysed product."""

    title: str = Field(..., description="Product title (max ~100 chars)")
    description: str = Field(..., description="Storytelling product description")
    features: List[str] = Field(default_factory=list, description="Standalone feature bullets")
    suggested_price: str = Field(..., description="Estimated market price")
    category: str = Field(..., description="E-commerce category")
    tags: List[str] = Field(default_factory=list, description="SEO tags")

    barcode: str = ""
    product_code: str = ""
    brand: str = ""
    production: str = ""
    weight: str = ""
    product_dimensions: str = ""
    box_dimensions: str = ""
    age_range: str = ""
    gender: str = ""

    market_trends: Optional[List[str]] = None
    competitor_prices: Optional[List[CompetitorPrice]] = None
    grounding_urls: Optional[List[GroundingSource]] = None

    def technical_summary(self) -> dict[str, str]:
        """Technical attributes keyed by their camelCase names, values verbatim."""
        return {to_camel(name): getattr(self, name) for name in TECHNICAL_FIELDS}


def product_response_schema() -> dict:
    """
    JSON schema handed to Gemini as ``responseSchema``.

    Uses the OpenAPI subset the API accepts (upper-case type names), mirroring
    ``ProductContent`` minus the fields the service fills in itself.
    """
    string = {"type": "STRING"}
    string_list = {"type": "ARRAY", "items": {"type": "STRING"}}
    properties = {
        "title": string,
        "description": string,
        "features": string_list,
        "suggestedPrice": string,
        "category": string,
        "tags": string_list,
    }
    for name in TECHNICAL_FIELDS:
        properties[to_camel(name)] = string
    properties["marketTrends"] = string_list
    return {
        "type": "OBJECT",
        "properties": properties,
        "required": [key for key in properties if key != "marketTrends"],
    }
