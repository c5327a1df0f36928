import pytest

from app.services.catalog.sku import artist_initials, generate_sku, sku_suffix, to_base36


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Jane Doe", "JD"),
        ("Joan Findley-Perls", "JFP"),
        ("Anna Maria de la Cruz", "AMDL"),
        ("Madonna", "MAD"),
        ("X", "X"),
        ("", "ART"),
    ],
)
def test_artist_initials(name, expected):
    assert artist_initials(name) == expected


def test_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"


def test_suffix_is_four_characters():
    assert sku_suffix(1) == "0001"
    assert sku_suffix(1234567) == to_base36(1234567)[-4:]
    assert len(sku_suffix()) == 4


def test_generate_sku_with_and_without_namespace():
    suffix = sku_suffix(1234567)
    assert generate_sku("Jane Doe", 1234567) == f"JD{suffix}"
    assert generate_sku("Jane Doe", 1234567, namespace="CBG") == f"CBG-JD-{suffix}"


def test_same_seed_gives_same_sku():
    assert generate_sku("Jane Doe", 42, "CBG") == generate_sku("Jane Doe", 42, "CBG")
    assert generate_sku("Jane Doe", 42, "CBG") != generate_sku("Jane Doe", 43, "CBG")
