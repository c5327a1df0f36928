from app.services.catalog.categories import (
    CategoryResolver,
    SyncSession,
    display_category_name,
    resolvers_for,
    split_category_name,
)
from app.services.catalog.errors import ProviderUnavailable


def test_category_names():
    assert display_category_name("Jane Doe", "Painting") == "Jane Doe - Painting"


def test_empty_type_falls_back_to_artist_category():
    assert display_category_name("Solo Name", "") == "Solo Name"
    assert display_category_name("Solo Name", "  ") == "Solo Name"


def test_split_uses_last_separator():
    assert split_category_name("Jane Doe - Painting") == ("Jane Doe", "Painting")
    assert split_category_name("Mary-Ann Smith - Jones - Print") == ("Mary-Ann Smith - Jones", "Print")
    assert split_category_name("Jane Doe") == ("Jane Doe", "")
    assert split_category_name("") == ("", "")


def test_existing_category_is_found_not_created(store):
    category_id = store.add_category("Jane Doe - Painting")
    resolver = CategoryResolver(store, {})

    assert resolver.resolve_or_create("Jane Doe - Painting") == category_id
    assert store.upserts == []


def test_missing_category_is_created_once_per_batch(store):
    cache = {}
    resolver = CategoryResolver(store, cache, attempt=0)

    first = resolver.resolve_or_create("Jane Doe - Painting")
    second = resolver.resolve_or_create("Jane Doe - Painting")

    assert first == second
    assert len(store.upserts) == 1
    key, obj = store.upserts[0]
    assert key == "category-Jane-Doe---Painting-677fd1987510-0"
    assert obj["id"].startswith("#category-")
    assert obj["category_data"]["name"] == "Jane Doe - Painting"
    assert store.searches == ["Jane Doe - Painting"]
    assert cache["Jane Doe - Painting"] == first


def test_blank_name_resolves_to_none(store):
    assert CategoryResolver(store, {}).resolve_or_create("   ") is None
    assert store.searches == []


def test_search_failure_does_not_create(store):
    store.fail_search = True
    assert CategoryResolver(store, {}).resolve_or_create("Jane Doe") is None
    assert store.upserts == []


def test_creation_failure_returns_none(store):
    store.fail_upsert = lambda key, obj: ProviderUnavailable("down")
    assert CategoryResolver(store, {}).resolve_or_create("Jane Doe") is None


def test_namespaces_have_separate_caches(store):
    session = SyncSession()
    display, reporting = resolvers_for(store, session)

    display.resolve_or_create("Jane Doe")
    reporting.resolve_or_create("Jane Doe")

    assert "Jane Doe" in session.display_categories
    assert "Jane Doe" in session.reporting_categories
    # la seconde résolution retrouve la catégorie créée par la première
    assert session.display_categories["Jane Doe"] == session.reporting_categories["Jane Doe"]
    assert len(store.upserts) == 1


def test_long_names_sharing_a_prefix_get_distinct_categories(store):
    resolver = CategoryResolver(store, {})
    painting = "Alexandrina Montgomery-Whitfield Smithson - Painting"
    photography = "Alexandrina Montgomery-Whitfield Smithson - Photography"

    first = resolver.resolve_or_create(painting)
    second = resolver.resolve_or_create(photography)

    assert first != second
    keys = [key for key, _ in store.upserts]
    assert len(set(keys)) == 2
    assert all(len(key) <= 128 for key in keys)


def test_names_differing_only_by_accents_get_distinct_keys(store):
    resolver = CategoryResolver(store, {})

    assert resolver.resolve_or_create("Chloé - Print") != resolver.resolve_or_create("Chloe - Print")
    assert store.upserts[0][0] != store.upserts[1][0]
