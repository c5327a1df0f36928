import sys
from copy import deepcopy
from pathlib import Path

import pytest

# Ensure repo root on sys.path for imports from anywhere in tests tree.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models.artwork import CategoryRef
from app.models.member import Member, MemberRole
from app.models.square import (
    BatchChangeInventoryResponse,
    BatchRetrieveInventoryCountsResponse,
    ListCatalogResponse,
    ListSettlementsResponse,
    RetrieveCatalogObjectResponse,
    Settlement,
    UpsertCatalogObjectResponse,
)
from app.repositories.archive_repo import ArchiveRepository
from app.services.catalog.errors import ConflictError, NotFoundError, ProviderUnavailable
from app.services.catalog.service import InventoryService
from app.services.catalog.writer import CatalogWriter, WriterOptions


class FakeSquareStore:
    """Catalogue Square en mémoire, avec la même interface que SquareClient."""

    def __init__(self, page_size=2):
        self.location_id = "LOC1"
        self.page_size = page_size
        self.objects = {}
        self.counts = {}
        self.settlements = []
        self.upserts = []
        self.searches = []
        self.inventory_changes = []
        self.adjustments = []
        self.count_requests = []
        self.deleted = []
        self.fail_upsert = None
        self.fail_search = False
        self.fail_inventory = False
        self.fail_list = False
        self._responses = {}
        self._next_id = 0

    def _new_id(self, prefix):
        self._next_id += 1
        return f"{prefix}{self._next_id}"

    # --- seed helpers ---

    def add_category(self, name):
        category_id = self._new_id("CAT")
        self.objects[category_id] = {
            "type": "CATEGORY",
            "id": category_id,
            "version": 1,
            "category_data": {"name": name},
        }
        return category_id

    def add_item(self, title, category_name=None, description="", amount=1000, sku=None, quantity=None,
                 category_field="categories"):
        item_id = self._new_id("ITEM")
        variation_id = self._new_id("VAR")
        item_data = {
            "name": title,
            "description": description,
            "variations": [
                {
                    "type": "ITEM_VARIATION",
                    "id": variation_id,
                    "version": 1,
                    "item_variation_data": {
                        "item_id": item_id,
                        "name": "Regular",
                        "sku": sku,
                        "price_money": {"amount": amount, "currency": "USD"},
                    },
                }
            ],
        }
        if category_name:
            existing = self.search_category_by_name(category_name)
            category_id = existing.provider_id if existing else self.add_category(category_name)
            if category_field == "categories":
                item_data["categories"] = [{"id": category_id}]
            elif category_field == "category_id":
                item_data["category_id"] = category_id
            else:
                item_data["reporting_category"] = {"id": category_id}
        self.objects[item_id] = {"type": "ITEM", "id": item_id, "version": 1, "item_data": item_data}
        if quantity is not None:
            self.counts[variation_id] = quantity
        return item_id, variation_id

    def items(self):
        return [o for o in self.objects.values() if o["type"] == "ITEM"]

    # --- Artifact Store interface ---

    def _page(self, object_type, cursor):
        if self.fail_list:
            raise ProviderUnavailable("Square est indisponible")
        objects = [o for o in self.objects.values() if o["type"] == object_type]
        start = int(cursor or 0)
        end = start + self.page_size
        next_cursor = str(end) if end < len(objects) else None
        return ListCatalogResponse.model_validate({"objects": deepcopy(objects[start:end]), "cursor": next_cursor})

    def list_items(self, cursor=None):
        return self._page("ITEM", cursor)

    def list_categories(self, cursor=None):
        return self._page("CATEGORY", cursor)

    def search_category_by_name(self, name):
        self.searches.append(name)
        if self.fail_search:
            raise ProviderUnavailable("search down")
        for obj in self.objects.values():
            if obj["type"] == "CATEGORY" and obj["category_data"]["name"] == name:
                return CategoryRef(name=name, provider_id=obj["id"])
        return None

    def upsert_object(self, idempotency_key, catalog_object):
        self.upserts.append((idempotency_key, deepcopy(catalog_object)))
        if idempotency_key in self._responses:
            return self._responses[idempotency_key]
        if self.fail_upsert:
            error = self.fail_upsert(idempotency_key, catalog_object)
            if error:
                raise error

        obj = deepcopy(catalog_object)
        if obj["type"] == "CATEGORY":
            obj["id"] = self._new_id("CAT")
            obj["version"] = 1
        elif obj["id"].startswith("#"):
            obj["id"] = self._new_id("ITEM")
            obj["version"] = 1
            for variation in obj["item_data"].get("variations", []):
                variation["id"] = self._new_id("VAR")
                variation["version"] = 1
                variation["item_variation_data"]["item_id"] = obj["id"]
        else:
            obj = self._apply_update(obj)

        self.objects[obj["id"]] = obj
        response = UpsertCatalogObjectResponse.model_validate({"catalog_object": deepcopy(obj)})
        self._responses[idempotency_key] = response
        return response

    def _apply_update(self, obj):
        existing = self.objects.get(obj["id"])
        if existing is None:
            raise NotFoundError("Object not found")
        if existing["version"] != obj.get("version"):
            raise ConflictError("Object version does not match for update")

        merged = deepcopy(existing)
        new_variations = obj["item_data"].pop("variations", None)
        merged["item_data"].update(obj["item_data"])
        if new_variations:
            by_id = {v["id"]: v for v in merged["item_data"]["variations"]}
            for variation in new_variations:
                current = by_id.get(variation["id"])
                if current is None or current["version"] != variation.get("version"):
                    raise ConflictError("Variation version does not match for update")
                current["item_variation_data"].update(variation["item_variation_data"])
                current["version"] += 1
        merged["version"] += 1
        return merged

    def retrieve_object(self, object_id):
        obj = self.objects.get(object_id)
        if obj is None:
            raise NotFoundError("Object not found")
        data = obj.get("item_data", {})
        category_ids = [c["id"] for c in data.get("categories", [])]
        if data.get("reporting_category"):
            category_ids.append(data["reporting_category"]["id"])
        related = [self.objects[c] for c in category_ids if c in self.objects]
        return RetrieveCatalogObjectResponse.model_validate({"object": deepcopy(obj), "related_objects": deepcopy(related)})

    def delete_object(self, object_id):
        obj = self.objects.pop(object_id, None)
        if obj is None:
            raise NotFoundError("Object not found")
        self.deleted.append(object_id)
        return [object_id] + [v["id"] for v in obj.get("item_data", {}).get("variations", [])]

    def batch_get_inventory_counts(self, catalog_object_ids, location_id=None, cursor=None):
        assert len(catalog_object_ids) <= 100
        self.count_requests.append(list(catalog_object_ids))
        counts = [
            {"catalog_object_id": vid, "state": "IN_STOCK", "location_id": self.location_id, "quantity": str(self.counts[vid])}
            for vid in catalog_object_ids
            if vid in self.counts
        ]
        return BatchRetrieveInventoryCountsResponse.model_validate({"counts": counts})

    def set_inventory_count(self, idempotency_key, variation_id, quantity, location_id=None):
        if self.fail_inventory:
            raise ProviderUnavailable("inventory down")
        self.inventory_changes.append((idempotency_key, variation_id, quantity))
        self.counts[variation_id] = quantity
        return BatchChangeInventoryResponse()

    def adjust_inventory(self, idempotency_key, variation_id, delta, location_id=None):
        if self.fail_inventory:
            raise ProviderUnavailable("inventory down")
        self.adjustments.append((idempotency_key, variation_id, delta))
        self.counts[variation_id] = self.counts.get(variation_id, 0) + delta
        return BatchChangeInventoryResponse.model_validate({
            "counts": [{"catalog_object_id": variation_id, "state": "IN_STOCK", "quantity": str(self.counts[variation_id])}]
        })

    def list_settlements(self, begin_time=None, end_time=None, cursor=None):
        return ListSettlementsResponse(settlements=self.settlements)

    def retrieve_settlement(self, settlement_id):
        for settlement in self.settlements:
            if settlement.id == settlement_id:
                return settlement
        return None


class InMemoryKV:
    def __init__(self):
        self.data = {}
        self.writes = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes += 1
        self.data[key] = value
        return True


@pytest.fixture
def store():
    return FakeSquareStore()


@pytest.fixture
def kv():
    return InMemoryKV()


@pytest.fixture
def options():
    return WriterOptions(currency="USD", sku_namespace="CBG", sku_seed=lambda record: 1234567)


@pytest.fixture
def writer(store, options):
    return CatalogWriter(store, options)


@pytest.fixture
def archive(kv):
    return ArchiveRepository(kv, key="test-archive")


@pytest.fixture
def service(store, archive, options):
    return InventoryService(store, archive, options)


@pytest.fixture
def other_artist_item(store):
    """(item_id, variation_id) d'une œuvre de John Roe."""
    return store.add_item("Field", "John Roe - Print", amount=2000, quantity=3)


@pytest.fixture
def admin_member():
    return Member(id="m1", email="admin@gallery.test", full_name="Gallery Admin", role=MemberRole.ADMIN)


@pytest.fixture
def artist_member():
    return Member(id="m2", email="jane@gallery.test", full_name="Jane Doe", role=MemberRole.MEMBER)


def make_record(**overrides):
    record = {
        "id": "1700000000001",
        "title": "Harbor at Dusk",
        "artistName": "Jane Doe",
        "type": "Painting",
        "medium": "Oil on canvas",
        "description": "A quiet evening scene.",
        "height": "24",
        "width": "36",
        "price": "450",
        "quantity": 1,
    }
    record.update(overrides)
    return record


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def settlement():
    return Settlement.model_validate({
        "id": "ST1",
        "status": "SENT",
        "initiated_at": "2026-10-01T10:00:00Z",
        "amount_money": {"amount": 9450, "currency": "USD"},
        "entries": [
            {"type": "TRANSACTION_AMOUNT", "amount_money": {"amount": 10000}},
            {"type": "TAX_AMOUNT", "amount_money": {"amount": 800}},
            {"type": "PROCESSING_FEE", "amount_money": {"amount": -350}},
        ],
    })
