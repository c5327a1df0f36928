from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Vocabulaire connu, mais ouvert: un type inconnu est conservé tel quel
ARTWORK_TYPES = [
    "Painting", "Drawing", "Print", "Card", "Ornaments", "Photography",
    "Ceramics", "Glass", "Jewelry", "Mixed Media", "Wood", "Books",
]


class CatalogModel(BaseModel):
    """Base commune: champs snake_case côté Python, camelCase côté JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ArtworkRecord(CatalogModel):
    id: Optional[str] = None
    provider_item_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("providerItemId", "provider_item_id", "squareId")
    )
    provider_variation_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("providerVariationId", "provider_variation_id", "variationId")
    )
    provider_item_version: Optional[int] = Field(
        None, validation_alias=AliasChoices("providerItemVersion", "provider_item_version", "version")
    )
    provider_variation_version: Optional[int] = Field(
        None, validation_alias=AliasChoices("providerVariationVersion", "provider_variation_version", "variationVersion")
    )
    title: str = ""
    artist_name: str = ""
    type: str = ""
    medium: str = ""
    description: str = ""
    height: str = ""
    width: str = ""
    dimensions: Optional[str] = None  # surcharge explicite du texte dérivé
    price: Optional[Decimal] = None
    sku: Optional[str] = None
    quantity: int = Field(1, ge=0)
    discounts: Optional[str] = None

    # Champs renseignés à la lecture depuis Square
    category: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("id", "sku", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        # Les ids locaux sont souvent des timestamps numériques
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("title", "artist_name", "type", "medium", "description", "height", "width", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        return str(value)

    @field_validator("price", mode="before")
    @classmethod
    def _empty_price(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_new(self) -> bool:
        return self.provider_item_id is None

    @property
    def dimensions_text(self) -> str:
        """
        Texte des dimensions: la surcharge si fournie, sinon `{h}" x {w}"`.
        """
        if self.dimensions and self.dimensions.strip():
            return self.dimensions.strip()
        if not self.height and not self.width:
            return ""
        return f'{self.height}" x {self.width}"'


class ArchivedArtwork(ArtworkRecord):
    archived_at: str
    archived_by: str = ""


class CategoryRef(CatalogModel):
    name: str
    provider_id: str


class BatchResult(CatalogModel):
    local_id: Optional[str] = None
    provider_item_id: Optional[str] = None
    provider_variation_id: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    category_id: Optional[str] = None
    reporting_category_id: Optional[str] = None
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    inventory_synced: Optional[bool] = None


class InventoryUpdateRequest(CatalogModel):
    """Stock absolu (`quantity`) ou ajustement relatif (`delta`), jamais les deux."""

    variation_id: str
    quantity: Optional[int] = Field(None, ge=0)
    delta: Optional[int] = None
    request_id: Optional[str] = None

    @model_validator(mode="after")
    def _quantity_or_delta(self):
        if (self.quantity is None) == (self.delta is None):
            raise ValueError("Indiquer soit quantity, soit delta")
        return self


class DeleteItemRequest(CatalogModel):
    item_id: str


class ArchiveRequest(CatalogModel):
    item_id: str
