"""
Façade appelée par les routes: inventaire, écriture par lot, archive,
stock et virements.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.models.artwork import ArchivedArtwork, ArtworkRecord, BatchResult
from app.models.member import Member
from app.models.settlement import SettlementSummary
from app.repositories.archive_repo import ArchiveRepository
from app.services.catalog.errors import (
    ArchiveWriteError,
    CatalogError,
    ConfigurationError,
    OwnershipError,
    ValidationError,
)
from app.services.catalog.reader import CatalogReader, is_owned_by
from app.services.catalog.writer import BatchReport, CatalogWriter, WriterOptions, raw_value
from app.utils.string_utils import build_idempotency_key

logger = logging.getLogger(__name__)


def summarize_settlement(settlement) -> SettlementSummary:
    """Ventile les entrées d'un virement en ventes, taxes et frais."""
    gross_sales = tax = fees = 0.0
    for entry in settlement.entries:
        amount = (entry.amount_money.amount if entry.amount_money else 0) / 100
        if entry.type == "TRANSACTION_AMOUNT":
            gross_sales += amount
        elif entry.type == "TAX_AMOUNT":
            tax += amount
        elif entry.type == "PROCESSING_FEE":
            fees += abs(amount)

    return SettlementSummary(
        id=settlement.id,
        date=settlement.initiated_at or settlement.created_at,
        status=settlement.status,
        grossSales=round(gross_sales, 2),
        tax=round(tax, 2),
        fees=round(fees, 2),
        deposited=(settlement.amount_money.amount if settlement.amount_money else 0) / 100,
    )


def new_local_id() -> str:
    return str(int(time.time() * 1000))


class InventoryService:
    def __init__(self, store, archive: Optional[ArchiveRepository], options: Optional[WriterOptions] = None):
        self.store = store
        self._archive = archive
        self.reader = CatalogReader(store)
        self.writer = CatalogWriter(store, options)

    @property
    def archive(self) -> ArchiveRepository:
        if self._archive is None:
            raise ConfigurationError("KV not configured")
        return self._archive

    def list_inventory(self, filter_artist: Optional[str] = None) -> List[ArtworkRecord]:
        return self.reader.list_artworks(filter_artist)

    def write_batch(self, records: Iterable, attempt: int = 0, should_continue=None) -> BatchReport:
        return self.writer.write_batch(records, attempt=attempt, should_continue=should_continue)

    def write_member_batch(self, records: Iterable, member: Member, attempt: int = 0) -> BatchReport:
        """
        Lot soumis par un membre. Hors admin, chaque mise à jour doit viser
        une œuvre du membre ; les autres échouent sans bloquer le lot.
        """
        if member.is_admin:
            return self.write_batch(records, attempt=attempt)

        records = list(records)
        rejected = {}
        for index, raw in enumerate(records):
            provider_item_id = raw_value(raw, "provider_item_id", "providerItemId", "squareId")
            if not provider_item_id:
                continue
            try:
                self._check_owner(self.reader.get_artwork(provider_item_id), member)
            except CatalogError as exc:
                logger.warning(f"⛔ Update of {provider_item_id} refused for {member.full_name}: {exc.message}")
                rejected[index] = BatchResult(
                    local_id=raw_value(raw, "id"),
                    provider_item_id=provider_item_id,
                    success=False,
                    error=exc.message,
                    error_type=type(exc).__name__,
                )

        report = self.write_batch([r for i, r in enumerate(records) if i not in rejected], attempt=attempt)
        written = iter(report.results)
        return BatchReport([rejected[i] if i in rejected else next(written) for i in range(len(records))])

    def _check_owner(self, record: ArtworkRecord, member: Optional[Member]) -> None:
        if member is None or member.is_admin:
            return
        if not is_owned_by(record, member.full_name):
            raise OwnershipError()

    def list_archive(self) -> List[ArchivedArtwork]:
        return self.archive.load()

    def archive_one(self, provider_item_id: str, member: Member) -> ArchivedArtwork:
        """
        Retire un article de Square et l'ajoute à l'archive.
        L'archive est lue AVANT la suppression: sans KV, rien n'est supprimé.
        Si l'écriture de l'archive échoue après la suppression, l'erreur
        porte l'enregistrement complet pour pouvoir le recréer.
        """
        archive = self.archive
        items = archive.load()
        record = self.reader.get_artwork(provider_item_id)
        self.store.delete_object(provider_item_id)

        archived = ArchivedArtwork(
            **record.model_dump(),
            archived_at=datetime.now(timezone.utc).isoformat(),
            archived_by=member.full_name,
        )
        try:
            archive.save(items + [archived])
        except CatalogError as exc:
            logger.error(
                f"❌ Item {provider_item_id} deleted from Square but not archived: "
                f"{archived.model_dump_json(by_alias=True)}"
            )
            raise ArchiveWriteError(archived, f"Article supprimé de Square mais non archivé: {exc.message}") from exc

        logger.info(f"📦 Item {provider_item_id} archived by {member.full_name}")
        return archived

    def restore_one(self, archived: ArchivedArtwork, member: Optional[Member] = None) -> ArtworkRecord:
        """
        Recrée une œuvre archivée comme un NOUVEL article Square
        (les anciens identifiants ne sont jamais réutilisés).
        """
        data = archived.model_dump(
            exclude={
                "archived_at",
                "archived_by",
                "provider_item_id",
                "provider_variation_id",
                "provider_item_version",
                "provider_variation_version",
                "category",
                "status",
                "created_at",
                "updated_at",
            }
        )
        data["id"] = new_local_id()
        fresh = ArtworkRecord(**data)

        report = self.writer.write_batch([fresh])
        report.raise_for_failures()
        result = report.results[0]

        if archived.provider_item_id:
            self.archive.remove(archived.provider_item_id)
        else:
            remaining = [a for a in self.archive.load() if a.id != archived.id]
            self.archive.save(remaining)

        restored_by = member.full_name if member else "system"
        logger.info(f"♻️ Archived item {archived.provider_item_id} restored as {result.provider_item_id} by {restored_by}")
        return fresh.model_copy(
            update={
                "id": result.provider_item_id,
                "provider_item_id": result.provider_item_id,
                "provider_variation_id": result.provider_variation_id,
                "sku": result.sku,
                "category": result.category,
                "status": "live",
            }
        )

    def _check_variation_owner(self, variation_id: str, member: Optional[Member]) -> None:
        if member is None or member.is_admin:
            return
        self._check_owner(self.reader.find_by_variation(variation_id), member)

    def update_quantity(
        self,
        variation_id: str,
        quantity: int,
        request_id: Optional[str] = None,
        member: Optional[Member] = None,
    ) -> int:
        """Fixe le stock absolu d'une variation."""
        if quantity < 0:
            raise ValidationError("La quantité doit être positive")
        self._check_variation_owner(variation_id, member)
        key = build_idempotency_key("inv-update", f"{variation_id}-{request_id or new_local_id()}")
        self.store.set_inventory_count(key, variation_id, quantity)
        return quantity

    def adjust_quantity(
        self,
        variation_id: str,
        delta: int,
        request_id: Optional[str] = None,
        member: Optional[Member] = None,
    ) -> Optional[int]:
        """
        Ajuste le stock d'une variation de `delta` (vente, retour, casse).
        Retourne le nouveau stock si Square le renvoie.
        """
        self._check_variation_owner(variation_id, member)
        key = build_idempotency_key("inv-adjust", f"{variation_id}-{request_id or new_local_id()}")
        response = self.store.adjust_inventory(key, variation_id, delta)
        logger.info(f"📦 Inventory of {variation_id} adjusted by {delta}")
        for count in response.counts:
            if count.catalog_object_id == variation_id and count.state == "IN_STOCK":
                return count.quantity_int
        return None

    def delete_item(self, item_id: str) -> List[str]:
        return self.store.delete_object(item_id)

    def list_settlements(self, begin_time: Optional[str] = None, end_time: Optional[str] = None) -> List[SettlementSummary]:
        settlements = []
        cursor = None
        while True:
            page = self.store.list_settlements(begin_time, end_time, cursor)
            settlements.extend(page.settlements)
            cursor = page.cursor
            if not cursor:
                break

        summaries = []
        for settlement in settlements:
            detailed = self.store.retrieve_settlement(settlement.id) or settlement
            summaries.append(summarize_settlement(detailed))
        return summaries
