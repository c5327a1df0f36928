"""
Résolution des catégories Square.

Deux espaces de noms par artiste:
- catégorie d'affichage "Artiste - Type"
- catégorie de reporting "Artiste"

Chaque lot d'écriture ouvre une SyncSession qui porte un cache par espace
de noms ; les catégories créées par un article sont visibles des suivants.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from app.services.catalog.errors import CatalogError
from app.utils.string_utils import build_idempotency_key, fingerprint_key_fragment, sanitize_key_fragment

logger = logging.getLogger(__name__)

CATEGORY_SEPARATOR = " - "


def display_category_name(artist_name: str, artwork_type: str) -> str:
    """Sans type, la catégorie d'affichage se réduit au nom de l'artiste."""
    if not (artwork_type or "").strip():
        return reporting_category_name(artist_name)
    return f"{artist_name}{CATEGORY_SEPARATOR}{artwork_type}"


def reporting_category_name(artist_name: str) -> str:
    return artist_name


def split_category_name(name: str) -> Tuple[str, str]:
    """
    Sépare "Artiste - Type" sur la DERNIÈRE occurrence de " - ".
    Sans séparateur, tout est considéré comme le nom de l'artiste.
    """
    name = name or ""
    index = name.rfind(CATEGORY_SEPARATOR)
    if index == -1:
        return name, ""
    return name[:index], name[index + len(CATEGORY_SEPARATOR):]


@dataclass
class SyncSession:
    """État d'un lot d'écriture, jeté à la fin du lot."""

    display_categories: Dict[str, str] = field(default_factory=dict)
    reporting_categories: Dict[str, str] = field(default_factory=dict)
    attempt: int = 0


class CategoryResolver:
    """Trouve ou crée une catégorie par nom exact, avec cache par lot."""

    def __init__(self, store, cache: Dict[str, str], attempt: int = 0):
        self.store = store
        self.cache = cache
        self.attempt = attempt

    def resolve_or_create(self, name: str, id_hint: Optional[str] = None) -> Optional[str]:
        """
        Retourne l'id Square de la catégorie `name`, la crée si besoin.
        Retourne None en cas d'échec: le lien de catégorie est best-effort.
        """
        if not name or not name.strip():
            return None

        cached = self.cache.get(name)
        if cached:
            return cached

        try:
            existing = self.store.search_category_by_name(name)
        except CatalogError as exc:
            # Pas de création à l'aveugle: on risquerait un doublon
            logger.warning("Category search failed for '%s': %s", name, exc)
            return None

        if existing:
            self.cache[name] = existing.provider_id
            return existing.provider_id

        return self._create(name, id_hint)

    def _create(self, name: str, id_hint: Optional[str]) -> Optional[str]:
        temp_id = f"#category-{sanitize_key_fragment(id_hint or name)}"
        category_object = {
            "type": "CATEGORY",
            "id": temp_id,
            "category_data": {"name": name},
        }
        key = build_idempotency_key("category", fingerprint_key_fragment(name), self.attempt)
        try:
            created = self.store.upsert_object(key, category_object)
        except CatalogError as exc:
            logger.error("Category creation failed for '%s': %s", name, exc)
            return None

        category_id = created.catalog_object.id
        logger.info("Created Square category '%s' (%s)", name, category_id)
        self.cache[name] = category_id
        return category_id


def resolvers_for(store, session: SyncSession) -> Tuple[CategoryResolver, CategoryResolver]:
    """(affichage, reporting), chacun avec son propre cache."""
    return (
        CategoryResolver(store, session.display_categories, session.attempt),
        CategoryResolver(store, session.reporting_categories, session.attempt),
    )
