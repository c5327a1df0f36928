"""
Écriture des œuvres dans le catalogue Square.

Chaque enregistrement traverse le même pipeline:
validation -> catégories -> graphe d'objets -> écriture -> inventaire.
Un échec est isolé à son enregistrement ; le lot continue.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.models.artwork import ARTWORK_TYPES, ArtworkRecord, BatchResult
from app.models.square import CatalogItem
from app.services.catalog.categories import (
    SyncSession,
    display_category_name,
    reporting_category_name,
    resolvers_for,
)
from app.services.catalog.description import encode_description
from app.services.catalog.errors import (
    CatalogError,
    ConfigurationError,
    MissingVersionError,
    PartialFailure,
    ProviderUnavailable,
    ValidationError,
    error_from_result,
)
from app.services.catalog.sku import default_namespace, generate_sku
from app.utils.money import to_minor_units
from app.utils.string_utils import build_idempotency_key

logger = logging.getLogger(__name__)

DEFAULT_VARIATION_NAME = "Regular"
GENERIC_WRITE_ERROR = "Échec de l'envoi vers Square"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class WriterOptions:
    currency: str = "USD"
    sku_namespace: Optional[str] = "CBG"
    # Sur UPDATE, la catégorie de reporting est-elle re-résolue ?
    refresh_reporting_on_update: bool = True
    # Graine de suffixe SKU (tests reproductibles) ; None = horloge
    sku_seed: Optional[Callable[[ArtworkRecord], int]] = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "WriterOptions":
        return cls(
            currency=os.getenv("SQUARE_CURRENCY", "USD"),
            sku_namespace=default_namespace() or None,
            refresh_reporting_on_update=_env_flag("CATALOG_REFRESH_REPORTING_ON_UPDATE", True),
        )


class BatchReport:
    """Résultats d'un lot, un par enregistrement soumis, dans l'ordre."""

    def __init__(self, results: List[BatchResult]):
        self.results = results

    @property
    def succeeded(self) -> List[BatchResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[BatchResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    def raise_for_failures(self) -> None:
        """Lot partiel: PartialFailure. Tout en échec: l'erreur typée du premier résultat."""
        if self.partial:
            raise PartialFailure(self.results)
        if self.failed:
            first = self.failed[0]
            raise error_from_result(first.error_type, first.error or GENERIC_WRITE_ERROR)

    def __iter__(self):
        return iter(self.results)

    def __len__(self):
        return len(self.results)


def raw_value(raw, *names):
    for name in names:
        value = getattr(raw, name, None) if not isinstance(raw, dict) else raw.get(name)
        if value not in (None, ""):
            return str(value)
    return None


def validate_record(raw) -> ArtworkRecord:
    """Étape 1: convertit et vérifie un enregistrement soumis."""
    if isinstance(raw, ArtworkRecord):
        record = raw
    else:
        try:
            record = ArtworkRecord.model_validate(raw)
        except PydanticValidationError as exc:
            problems = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ValidationError(f"Données invalides ({problems})") from exc

    missing = [
        label
        for label, value in (("title", record.title), ("artistName", record.artist_name))
        if not value.strip()
    ]
    if missing:
        raise ValidationError(f"Champs requis manquants: {', '.join(missing)}")

    if record.price is not None and record.price < 0:
        raise ValidationError("Le prix doit être positif")

    # Type vide accepté: catégorie "Artiste" seule
    if record.type.strip() and record.type not in ARTWORK_TYPES:
        logger.info("Unknown artwork type '%s' kept as is", record.type)

    if record.is_new:
        if not record.id:
            raise ValidationError("Identifiant local requis pour une création")
        if record.price is None:
            raise ValidationError("Prix requis pour une création")
    else:
        if record.provider_item_version is None:
            raise MissingVersionError()
        if (
            record.provider_variation_id
            and record.price is not None
            and record.provider_variation_version is None
        ):
            raise MissingVersionError("Version de variation manquante pour la mise à jour du prix")

    return record


def build_item_graph(
    record: ArtworkRecord,
    sku: str,
    description: str,
    category_id: Optional[str],
    reporting_category_id: Optional[str],
    location_id: str,
    currency: str,
) -> Dict:
    """Graphe d'objets d'une création: un ITEM et sa variation unique."""
    item_data = {
        "name": record.title,
        "description": description,
        "variations": [
            {
                "type": "ITEM_VARIATION",
                "id": f"#variation-{record.id}",
                "item_variation_data": {
                    "name": DEFAULT_VARIATION_NAME,
                    "pricing_type": "FIXED_PRICING",
                    "price_money": {
                        "amount": to_minor_units(record.price),
                        "currency": currency,
                    },
                    "sku": sku,
                    "track_inventory": True,
                    "location_overrides": [
                        {"location_id": location_id, "track_inventory": True}
                    ],
                },
            }
        ],
    }
    if category_id:
        item_data["categories"] = [{"id": category_id}]
    if reporting_category_id:
        item_data["reporting_category"] = {"id": reporting_category_id}

    return {"type": "ITEM", "id": f"#item-{record.id}", "item_data": item_data}


def build_update_graph(
    record: ArtworkRecord,
    description: str,
    category_id: Optional[str],
    reporting_category_id: Optional[str],
    currency: str,
) -> Dict:
    """Graphe partiel d'une mise à jour, porteur des jetons de version."""
    item_data = {"name": record.title, "description": description}
    if category_id:
        item_data["categories"] = [{"id": category_id}]
    if reporting_category_id:
        item_data["reporting_category"] = {"id": reporting_category_id}

    if record.provider_variation_id and record.price is not None:
        variation_data = {
            "item_id": record.provider_item_id,
            "name": DEFAULT_VARIATION_NAME,
            "pricing_type": "FIXED_PRICING",
            "price_money": {"amount": to_minor_units(record.price), "currency": currency},
            "track_inventory": True,
        }
        if record.sku:
            variation_data["sku"] = record.sku
        item_data["variations"] = [
            {
                "type": "ITEM_VARIATION",
                "id": record.provider_variation_id,
                "version": record.provider_variation_version,
                "item_variation_data": variation_data,
            }
        ]

    return {
        "type": "ITEM",
        "id": record.provider_item_id,
        "version": record.provider_item_version,
        "item_data": item_data,
    }


class CatalogWriter:
    def __init__(self, store, options: Optional[WriterOptions] = None):
        self.store = store
        self.options = options or WriterOptions.from_env()

    def iter_batch(self, records: Iterable, attempt: int = 0) -> Iterator[BatchResult]:
        """Traite les enregistrements un par un, dans l'ordre, sur une même session."""
        session = SyncSession(attempt=attempt)
        for raw in records:
            yield self.write_one(raw, session)

    def write_batch(
        self,
        records: Iterable,
        attempt: int = 0,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> BatchReport:
        """
        Écrit un lot et retourne un résultat par enregistrement.
        Si `should_continue()` devient faux, les résultats déjà obtenus sont
        conservés et les enregistrements restants marqués annulés.
        Une ConfigurationError (jeton révoqué en cours de lot) arrête le lot de
        la même façon: l'enregistrement courant et les suivants sont en échec.
        """
        records = list(records)
        results: List[BatchResult] = []
        error, error_type = "Annulé avant traitement", "Cancelled"
        stream = self.iter_batch(records, attempt)
        try:
            while len(results) < len(records):
                if should_continue is not None and not should_continue():
                    logger.warning("Batch aborted after %s/%s records", len(results), len(records))
                    break
                try:
                    results.append(next(stream))
                except ConfigurationError as exc:
                    logger.error("Batch stopped after %s/%s records: %s", len(results), len(records), exc.message)
                    error, error_type = exc.message, type(exc).__name__
                    break
        finally:
            stream.close()

        for raw in records[len(results):]:
            results.append(
                BatchResult(
                    local_id=raw_value(raw, "id"),
                    provider_item_id=raw_value(raw, "provider_item_id", "providerItemId", "squareId"),
                    success=False,
                    error=error,
                    error_type=error_type,
                )
            )

        report = BatchReport(results)
        logger.info(
            "Batch done: %s succeeded, %s failed", len(report.succeeded), len(report.failed)
        )
        return report

    def write_one(self, raw, session: SyncSession) -> BatchResult:
        local_id = raw_value(raw, "id")
        provider_item_id = raw_value(raw, "provider_item_id", "providerItemId", "squareId")
        try:
            record = validate_record(raw)
            if record.is_new:
                return self._create(record, session)
            return self._update(record, session)
        except ConfigurationError:
            raise
        except CatalogError as exc:
            logger.error("Record %s failed: %s", local_id or provider_item_id, exc.message)
            return BatchResult(
                local_id=local_id,
                provider_item_id=provider_item_id,
                success=False,
                error=exc.message or GENERIC_WRITE_ERROR,
                error_type=type(exc).__name__,
            )

    def _create(self, record: ArtworkRecord, session: SyncSession) -> BatchResult:
        seed = self.options.sku_seed(record) if self.options.sku_seed else None
        sku = record.sku or generate_sku(record.artist_name, seed, namespace=self.options.sku_namespace)

        display, reporting = resolvers_for(self.store, session)
        category_name = display_category_name(record.artist_name, record.type)
        category_id = display.resolve_or_create(category_name)
        reporting_id = reporting.resolve_or_create(reporting_category_name(record.artist_name))

        graph = build_item_graph(
            record,
            sku,
            encode_description(record),
            category_id,
            reporting_id,
            self.store.location_id,
            self.options.currency,
        )
        key = build_idempotency_key("item", record.id, session.attempt)
        response = self.store.upsert_object(key, graph)

        item = response.catalog_object
        if not isinstance(item, CatalogItem):
            raise ProviderUnavailable("Square n'a pas renvoyé l'article créé")
        variation = item.item_data.first_variation
        logger.info("Created Square item %s for local record %s", item.id, record.id)

        inventory_synced = None
        if record.quantity > 0 and variation:
            inventory_key = build_idempotency_key("inventory", record.id, session.attempt)
            inventory_synced = self._set_quantity(inventory_key, variation.id, record.quantity)

        return BatchResult(
            local_id=record.id,
            provider_item_id=item.id,
            provider_variation_id=variation.id if variation else None,
            sku=(variation.item_variation_data.sku if variation else None) or sku,
            category=category_name,
            category_id=category_id,
            reporting_category_id=reporting_id,
            success=True,
            inventory_synced=inventory_synced,
        )

    def _update(self, record: ArtworkRecord, session: SyncSession) -> BatchResult:
        display, reporting = resolvers_for(self.store, session)
        category_name = display_category_name(record.artist_name, record.type)
        category_id = display.resolve_or_create(category_name)
        reporting_id = None
        if self.options.refresh_reporting_on_update:
            reporting_id = reporting.resolve_or_create(reporting_category_name(record.artist_name))

        graph = build_update_graph(
            record,
            encode_description(record),
            category_id,
            reporting_id,
            self.options.currency,
        )
        key = build_idempotency_key(
            "update", f"{record.provider_item_id}-v{record.provider_item_version}", session.attempt
        )
        response = self.store.upsert_object(key, graph)

        item = response.catalog_object
        variation = item.item_data.first_variation if isinstance(item, CatalogItem) else None
        logger.info("Updated Square item %s", record.provider_item_id)

        return BatchResult(
            local_id=record.id,
            provider_item_id=item.id,
            provider_variation_id=(variation.id if variation else record.provider_variation_id),
            sku=record.sku or (variation.item_variation_data.sku if variation else None),
            category=category_name,
            category_id=category_id,
            reporting_category_id=reporting_id,
            success=True,
        )

    def _set_quantity(self, key: str, variation_id: str, quantity: int) -> bool:
        """Stock absolu best-effort: un échec n'annule pas l'article créé."""
        try:
            self.store.set_inventory_count(key, variation_id, quantity)
            return True
        except CatalogError as exc:
            logger.error("Inventory count failed for variation %s: %s", variation_id, exc)
            return False
