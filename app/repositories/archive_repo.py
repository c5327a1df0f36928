"""
Repository de l'archive des œuvres retirées du catalogue Square.

Toute l'archive est un seul blob JSON sous une clé fixe du stockage KV.
Chaque sauvegarde écrase la précédente: deux écritures concurrentes peuvent
perdre une mise à jour (acceptable pour une seule galerie).
"""

import json
import logging
import os
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.models.artwork import ArchivedArtwork

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_KEY = "cbg-archive"


class ArchiveRepository:
    """Repository pour la liste des œuvres archivées"""

    def __init__(self, kv, key: Optional[str] = None):
        self.kv = kv
        self.key = key or os.getenv("ARCHIVE_KV_KEY", DEFAULT_ARCHIVE_KEY)

    def load(self) -> List[ArchivedArtwork]:
        """
        Charge l'archive. Blob absent ou illisible: liste vide.
        """
        raw = self.kv.get(self.key)
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Archive blob is not valid JSON: {e}")
            return []

        if not isinstance(data, list):
            logger.error("Archive blob is not a list, ignoring it")
            return []

        items = []
        for entry in data:
            try:
                items.append(ArchivedArtwork.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed archive entry: {e}")
        return items

    def save(self, items: List[ArchivedArtwork]) -> bool:
        """Écrase entièrement le blob d'archive."""
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        saved = self.kv.set(self.key, json.dumps(payload))
        logger.info(f"🗄️ Archive saved ({len(items)} items)")
        return saved

    def append(self, item: ArchivedArtwork) -> List[ArchivedArtwork]:
        items = self.load()
        items.append(item)
        self.save(items)
        return items

    def remove(self, provider_item_id: str) -> List[ArchivedArtwork]:
        items = self.load()
        remaining = [i for i in items if i.provider_item_id != provider_item_id]
        if len(remaining) != len(items):
            self.save(remaining)
        return remaining
