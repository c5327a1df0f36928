"""
Modèles des réponses de l'API Square (catalogue, inventaire, virements).

Chaque endpoint a sa variante de réponse explicite ; les objets catalogue
forment une union discriminée sur le champ `type`. Les dictionnaires bruts
ne sortent jamais du client Square.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

KNOWN_OBJECT_TYPES = {"ITEM", "ITEM_VARIATION", "CATEGORY"}


class Money(BaseModel):
    amount: int = 0
    currency: str = "USD"


class CatalogIdRef(BaseModel):
    id: str
    ordinal: Optional[int] = None


class ItemVariationData(BaseModel):
    item_id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    pricing_type: Optional[str] = None
    price_money: Optional[Money] = None
    track_inventory: Optional[bool] = None


class CatalogItemVariation(BaseModel):
    type: Literal["ITEM_VARIATION"]
    id: str
    version: Optional[int] = None
    item_variation_data: ItemVariationData = Field(default_factory=ItemVariationData)


class ItemData(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    description_plaintext: Optional[str] = None
    description_html: Optional[str] = None
    category_id: Optional[str] = None
    categories: List[CatalogIdRef] = []
    reporting_category: Optional[CatalogIdRef] = None
    variations: List[CatalogItemVariation] = []

    @property
    def first_variation(self) -> Optional[CatalogItemVariation]:
        return self.variations[0] if self.variations else None


class CatalogItem(BaseModel):
    type: Literal["ITEM"]
    id: str
    version: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    is_deleted: bool = False
    item_data: ItemData = Field(default_factory=ItemData)


class CategoryData(BaseModel):
    name: Optional[str] = None


class CatalogCategory(BaseModel):
    type: Literal["CATEGORY"]
    id: str
    version: Optional[int] = None
    category_data: CategoryData = Field(default_factory=CategoryData)


CatalogObject = Annotated[
    Union[CatalogItem, CatalogItemVariation, CatalogCategory],
    Field(discriminator="type"),
]


def keep_known_objects(raw_objects) -> list:
    """Ignore les types d'objets qui ne nous concernent pas (IMAGE, TAX, ...)"""
    return [o for o in (raw_objects or []) if isinstance(o, dict) and o.get("type") in KNOWN_OBJECT_TYPES]


class SquareErrorDetail(BaseModel):
    category: Optional[str] = None
    code: Optional[str] = None
    detail: Optional[str] = None
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    errors: List[SquareErrorDetail] = []

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors if e.code]

    def first_detail(self) -> Optional[str]:
        for error in self.errors:
            if error.detail:
                return error.detail
        return None


class ListCatalogResponse(BaseModel):
    objects: List[CatalogObject] = []
    cursor: Optional[str] = None

    @field_validator("objects", mode="before")
    @classmethod
    def _filter_objects(cls, value):
        return keep_known_objects(value)


class SearchCatalogObjectsResponse(ListCatalogResponse):
    pass


class IdMapping(BaseModel):
    client_object_id: Optional[str] = None
    object_id: Optional[str] = None


class UpsertCatalogObjectResponse(BaseModel):
    catalog_object: CatalogObject
    id_mappings: List[IdMapping] = []


class RetrieveCatalogObjectResponse(BaseModel):
    object: CatalogObject
    related_objects: List[CatalogObject] = []

    @field_validator("related_objects", mode="before")
    @classmethod
    def _filter_related(cls, value):
        return keep_known_objects(value)


class DeleteCatalogObjectResponse(BaseModel):
    deleted_object_ids: List[str] = []
    deleted_at: Optional[str] = None


class InventoryCount(BaseModel):
    catalog_object_id: str
    catalog_object_type: Optional[str] = None
    state: Optional[str] = None
    location_id: Optional[str] = None
    quantity: str = "0"
    calculated_at: Optional[str] = None

    @property
    def quantity_int(self) -> int:
        # Square renvoie des quantités décimales sous forme de chaîne ("3" ou "2.5")
        try:
            return int(float(self.quantity))
        except (TypeError, ValueError):
            return 0


class BatchRetrieveInventoryCountsResponse(BaseModel):
    counts: List[InventoryCount] = []
    cursor: Optional[str] = None


class BatchChangeInventoryResponse(BaseModel):
    counts: List[InventoryCount] = []


class SettlementEntry(BaseModel):
    type: Optional[str] = None
    amount_money: Optional[Money] = None


class Settlement(BaseModel):
    id: str
    status: Optional[str] = None
    initiated_at: Optional[str] = None
    created_at: Optional[str] = None
    amount_money: Optional[Money] = None
    entries: List[SettlementEntry] = []


class ListSettlementsResponse(BaseModel):
    settlements: List[Settlement] = []
    cursor: Optional[str] = None


class RetrieveSettlementResponse(BaseModel):
    settlement: Optional[Settlement] = None
