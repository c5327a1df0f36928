"""
Lecture du catalogue Square et conversion en ArtworkRecord.

Les listes sont paginées par curseur jusqu'à épuisement ; un échec de
pagination fait échouer toute la lecture (jamais de liste partielle).
"""

import logging
from typing import Dict, Iterable, List, Optional

from app.models.artwork import ArtworkRecord
from app.models.square import CatalogCategory, CatalogItem
from app.services.catalog.categories import split_category_name
from app.services.catalog.description import decode_description, html_to_text
from app.services.catalog.errors import NotFoundError
from app.utils.money import from_minor_units

logger = logging.getLogger(__name__)

INVENTORY_BATCH_SIZE = 100
IN_STOCK = "IN_STOCK"


def chunked(values: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


def resolve_category_name(item: CatalogItem, categories: Dict[str, str]) -> str:
    """category_id, puis la première de `categories`, puis reporting_category."""
    data = item.item_data
    candidates = [data.category_id]
    if data.categories:
        candidates.append(data.categories[0].id)
    if data.reporting_category:
        candidates.append(data.reporting_category.id)

    for category_id in candidates:
        if category_id and category_id in categories:
            return categories[category_id]
    return ""


def raw_description(item: CatalogItem) -> str:
    data = item.item_data
    text = data.description or data.description_plaintext or ""
    if not text and data.description_html:
        text = html_to_text(data.description_html)
    return text


def to_artwork(item: CatalogItem, categories: Dict[str, str], counts: Dict[str, int]) -> ArtworkRecord:
    """Transforme un article Square en ArtworkRecord local."""
    data = item.item_data
    variation = data.first_variation
    variation_data = variation.item_variation_data if variation else None

    category_name = resolve_category_name(item, categories)
    artist_name, artwork_type = split_category_name(category_name)
    decoded = decode_description(raw_description(item))

    price_money = variation_data.price_money if variation_data else None

    return ArtworkRecord(
        id=item.id,
        provider_item_id=item.id,
        provider_variation_id=variation.id if variation else None,
        provider_item_version=item.version,
        provider_variation_version=variation.version if variation else None,
        title=data.name or "Untitled",
        artist_name=artist_name,
        category=category_name,
        type=artwork_type,
        medium=decoded.medium,
        description=decoded.clean_description,
        dimensions=decoded.dimensions,
        height=decoded.height,
        width=decoded.width,
        discounts=decoded.discounts or None,
        price=from_minor_units(price_money.amount if price_money else 0),
        sku=(variation_data.sku if variation_data else None) or item.id,
        quantity=counts.get(variation.id, 0) if variation else 0,
        status="live",
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def matches_artist(record: ArtworkRecord, artist_filter: str) -> bool:
    """
    Correspondance volontairement large: nom exact, préfixe du nom, ou
    catégorie complète commençant par le filtre (insensible à la casse).
    """
    search = (artist_filter or "").strip().lower()
    if not search:
        return True
    artist = (record.artist_name or "").strip().lower()
    category = (record.category or "").lower()
    return artist == search or artist.startswith(search) or category.startswith(search)


def filter_by_artist(records: List[ArtworkRecord], artist_filter: Optional[str]) -> List[ArtworkRecord]:
    if not artist_filter or not artist_filter.strip():
        return list(records)
    return [r for r in records if matches_artist(r, artist_filter)]


def is_owned_by(record: ArtworkRecord, full_name: str) -> bool:
    """Propriété stricte: nom d'artiste exact, sans la tolérance de préfixe du filtre."""
    return (record.artist_name or "").strip().lower() == (full_name or "").strip().lower()


class CatalogReader:
    def __init__(self, store):
        self.store = store

    def list_items(self) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        cursor = None
        while True:
            page = self.store.list_items(cursor)
            items.extend(o for o in page.objects if isinstance(o, CatalogItem) and not o.is_deleted)
            cursor = page.cursor
            if not cursor:
                break
        return items

    def list_categories(self) -> Dict[str, str]:
        categories: Dict[str, str] = {}
        cursor = None
        while True:
            page = self.store.list_categories(cursor)
            for obj in page.objects:
                if isinstance(obj, CatalogCategory):
                    categories[obj.id] = obj.category_data.name or "Unknown"
            cursor = page.cursor
            if not cursor:
                break
        return categories

    def get_inventory_counts(self, variation_ids: List[str]) -> Dict[str, int]:
        """
        Stock IN_STOCK par variation, par lots de 100 ids.
        Une variation absente de la réponse a un stock nul.
        """
        counts: Dict[str, int] = {}
        unique_ids = list(dict.fromkeys(v for v in variation_ids if v))
        for batch in chunked(unique_ids, INVENTORY_BATCH_SIZE):
            cursor = None
            while True:
                response = self.store.batch_get_inventory_counts(batch, cursor=cursor)
                for count in response.counts:
                    if count.state == IN_STOCK:
                        counts[count.catalog_object_id] = count.quantity_int
                cursor = response.cursor
                if not cursor:
                    break
        return counts

    def list_artworks(self, artist_filter: Optional[str] = None) -> List[ArtworkRecord]:
        items = self.list_items()
        categories = self.list_categories()
        variation_ids = [
            item.item_data.first_variation.id
            for item in items
            if item.item_data.first_variation
        ]
        counts = self.get_inventory_counts(variation_ids)
        records = [to_artwork(item, categories, counts) for item in items]
        filtered = filter_by_artist(records, artist_filter)
        logger.info("Loaded %s Square items (%s after artist filter)", len(records), len(filtered))
        return filtered

    def get_artwork(self, item_id: str) -> ArtworkRecord:
        """Lit un seul article avec ses catégories liées."""
        response = self.store.retrieve_object(item_id)
        item = response.object
        if not isinstance(item, CatalogItem) or item.is_deleted:
            raise NotFoundError(f"Article {item_id} introuvable")

        categories = {
            obj.id: obj.category_data.name or "Unknown"
            for obj in response.related_objects
            if isinstance(obj, CatalogCategory)
        }
        variation = item.item_data.first_variation
        counts = self.get_inventory_counts([variation.id]) if variation else {}
        return to_artwork(item, categories, counts)

    def find_by_variation(self, variation_id: str) -> ArtworkRecord:
        """Œuvre portant la variation `variation_id` (parcourt tout l'inventaire)."""
        for record in self.list_artworks():
            if record.provider_variation_id == variation_id:
                return record
        raise NotFoundError(f"Variation {variation_id} introuvable")
