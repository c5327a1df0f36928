"""
Client Square pour le catalogue, l'inventaire et les virements.
Utilise l'API HTTP v2 (https://connect.squareup.com/v2).

Toutes les réponses sont converties en modèles typés (app.models.square)
avant de sortir de ce module.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from app.models.artwork import CategoryRef
from app.models.square import (
    BatchChangeInventoryResponse,
    BatchRetrieveInventoryCountsResponse,
    CatalogCategory,
    DeleteCatalogObjectResponse,
    ErrorResponse,
    ListCatalogResponse,
    ListSettlementsResponse,
    RetrieveCatalogObjectResponse,
    RetrieveSettlementResponse,
    SearchCatalogObjectsResponse,
    Settlement,
    UpsertCatalogObjectResponse,
)
from app.services.catalog.errors import (
    CatalogError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ProviderUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

PRODUCTION_URL = "https://connect.squareup.com/v2"
SANDBOX_URL = "https://connect.squareupsandbox.com/v2"
DEFAULT_SQUARE_VERSION = "2024-12-18"

# Square accepte au plus 100 ids par batch-retrieve
INVENTORY_BATCH_LIMIT = 100

CONFLICT_CODES = {"VERSION_MISMATCH", "CONFLICT"}


class SquareClient:
    """Accès HTTP au catalogue et à l'inventaire Square d'un emplacement."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        location_id: Optional[str] = None,
        environment: Optional[str] = None,
        version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.access_token = access_token or os.getenv("SQUARE_ACCESS_TOKEN")
        self.location_id = location_id or os.getenv("SQUARE_LOCATION_ID")
        if not self.access_token or not self.location_id:
            raise ConfigurationError()

        environment = (environment or os.getenv("SQUARE_ENVIRONMENT", "production")).lower()
        self.base_url = SANDBOX_URL if environment == "sandbox" else PRODUCTION_URL
        self.version = version or os.getenv("SQUARE_VERSION", DEFAULT_SQUARE_VERSION)
        self.timeout = float(timeout or os.getenv("SQUARE_TIMEOUT", "15"))
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Square-Version": self.version,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, endpoint: str, retry: bool = False, **kwargs) -> Dict:
        """
        Effectue une requête vers Square.
        Seules les lectures (retry=True) sont rejouées, une seule fois.
        """
        attempts = 2 if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                return self._send(method, endpoint, **kwargs)
            except ProviderUnavailable as exc:
                if attempt >= attempts:
                    raise
                logger.warning("Square %s %s failed (%s), retrying once", method, endpoint, exc)
        return {}

    def _send(self, method: str, endpoint: str, **kwargs) -> Dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.Timeout as exc:
            logger.error("Square request timed out: %s %s", method, endpoint)
            raise ProviderUnavailable(f"Square n'a pas répondu à temps ({endpoint})") from exc
        except requests.RequestException as exc:
            logger.error("Square request failed: %s", exc)
            raise ProviderUnavailable(str(exc)) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            raise self._error_for(response.status_code, data)

        return data if isinstance(data, dict) else {}

    @staticmethod
    def _error_for(status_code: int, data) -> CatalogError:
        """Traduit une réponse d'erreur Square dans la taxonomie du catalogue."""
        try:
            errors = ErrorResponse.model_validate(data if isinstance(data, dict) else {})
        except PydanticValidationError:
            errors = ErrorResponse()

        detail = errors.first_detail()
        codes = set(errors.codes)
        logger.error("Square API error %s: %s", status_code, detail or sorted(codes))

        if status_code in (401, 403):
            return ConfigurationError(detail or "Square a refusé les identifiants", status_code)
        if status_code == 404:
            return NotFoundError(detail, status_code)
        if status_code == 409 or codes & CONFLICT_CODES:
            return ConflictError(detail, status_code)
        if status_code >= 500 or status_code == 429:
            return ProviderUnavailable(detail or f"Square API error {status_code}", status_code)
        return ValidationError(detail or f"Square API error {status_code}", status_code)

    @staticmethod
    def _decode(model, data: Dict):
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            logger.error("Unexpected Square payload for %s: %s", model.__name__, exc)
            raise ProviderUnavailable(f"Réponse Square inattendue ({model.__name__})") from exc

    # --- Catalogue ---

    def _list_catalog(self, object_type: str, cursor: Optional[str]) -> ListCatalogResponse:
        params = {"types": object_type}
        if cursor:
            params["cursor"] = cursor
        data = self._request("GET", "/catalog/list", retry=True, params=params)
        return self._decode(ListCatalogResponse, data)

    def list_items(self, cursor: Optional[str] = None) -> ListCatalogResponse:
        return self._list_catalog("ITEM", cursor)

    def list_categories(self, cursor: Optional[str] = None) -> ListCatalogResponse:
        return self._list_catalog("CATEGORY", cursor)

    def search_category_by_name(self, name: str) -> Optional[CategoryRef]:
        """
        Cherche une catégorie par nom exact.
        Retourne sa référence, ou None si aucune ne correspond.
        """
        payload = {
            "object_types": ["CATEGORY"],
            "query": {
                "exact_query": {
                    "attribute_name": "name",
                    "attribute_value": name,
                }
            },
        }
        data = self._request("POST", "/catalog/search", retry=True, json=payload)
        result = self._decode(SearchCatalogObjectsResponse, data)
        categories = [o for o in result.objects if isinstance(o, CatalogCategory)]
        if not categories:
            return None
        match = next((c for c in categories if c.category_data.name == name), categories[0])
        return CategoryRef(name=match.category_data.name or name, provider_id=match.id)

    def upsert_object(self, idempotency_key: str, catalog_object: Dict) -> UpsertCatalogObjectResponse:
        data = self._request(
            "POST",
            "/catalog/object",
            json={"idempotency_key": idempotency_key, "object": catalog_object},
        )
        return self._decode(UpsertCatalogObjectResponse, data)

    def retrieve_object(self, object_id: str) -> RetrieveCatalogObjectResponse:
        data = self._request(
            "GET",
            f"/catalog/object/{object_id}",
            retry=True,
            params={"include_related_objects": "true"},
        )
        return self._decode(RetrieveCatalogObjectResponse, data)

    def delete_object(self, object_id: str) -> List[str]:
        data = self._request("DELETE", f"/catalog/object/{object_id}")
        result = self._decode(DeleteCatalogObjectResponse, data)
        return result.deleted_object_ids or [object_id]

    # --- Inventaire ---

    def batch_get_inventory_counts(
        self,
        catalog_object_ids: List[str],
        location_id: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> BatchRetrieveInventoryCountsResponse:
        if len(catalog_object_ids) > INVENTORY_BATCH_LIMIT:
            raise ValidationError(f"Au plus {INVENTORY_BATCH_LIMIT} ids par requête d'inventaire")

        payload = {
            "catalog_object_ids": list(catalog_object_ids),
            "location_ids": [location_id or self.location_id],
        }
        if cursor:
            payload["cursor"] = cursor
        data = self._request("POST", "/inventory/counts/batch-retrieve", retry=True, json=payload)
        return self._decode(BatchRetrieveInventoryCountsResponse, data)

    def _change_inventory(self, idempotency_key: str, change: Dict) -> BatchChangeInventoryResponse:
        data = self._request(
            "POST",
            "/inventory/changes/batch-create",
            json={"idempotency_key": idempotency_key, "changes": [change]},
        )
        return self._decode(BatchChangeInventoryResponse, data)

    def set_inventory_count(
        self,
        idempotency_key: str,
        variation_id: str,
        quantity: int,
        location_id: Optional[str] = None,
    ) -> BatchChangeInventoryResponse:
        """Fixe le stock absolu (PHYSICAL_COUNT) d'une variation."""
        change = {
            "type": "PHYSICAL_COUNT",
            "physical_count": {
                "catalog_object_id": variation_id,
                "location_id": location_id or self.location_id,
                "quantity": str(quantity),
                "state": "IN_STOCK",
                "occurred_at": datetime.now(timezone.utc).isoformat(),
            },
        }
        return self._change_inventory(idempotency_key, change)

    def adjust_inventory(
        self,
        idempotency_key: str,
        variation_id: str,
        delta: int,
        location_id: Optional[str] = None,
    ) -> BatchChangeInventoryResponse:
        """Ajustement relatif: positif = entrée en stock, négatif = sortie (WASTE)."""
        if delta == 0:
            return BatchChangeInventoryResponse()
        from_state, to_state = ("NONE", "IN_STOCK") if delta > 0 else ("IN_STOCK", "WASTE")
        change = {
            "type": "ADJUSTMENT",
            "adjustment": {
                "catalog_object_id": variation_id,
                "location_id": location_id or self.location_id,
                "quantity": str(abs(delta)),
                "from_state": from_state,
                "to_state": to_state,
                "occurred_at": datetime.now(timezone.utc).isoformat(),
            },
        }
        return self._change_inventory(idempotency_key, change)

    # --- Virements (page financière) ---

    def list_settlements(
        self,
        begin_time: Optional[str] = None,
        end_time: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> ListSettlementsResponse:
        params = {"location_id": self.location_id}
        if begin_time:
            params["begin_time"] = begin_time
        if end_time:
            params["end_time"] = end_time
        if cursor:
            params["cursor"] = cursor
        data = self._request("GET", "/settlements", retry=True, params=params)
        return self._decode(ListSettlementsResponse, data)

    def retrieve_settlement(self, settlement_id: str) -> Optional[Settlement]:
        data = self._request("GET", f"/settlements/{settlement_id}", retry=True)
        return self._decode(RetrieveSettlementResponse, data).settlement
