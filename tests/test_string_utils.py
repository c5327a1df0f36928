from decimal import Decimal

from app.utils.money import from_minor_units, to_minor_units
from app.utils.string_utils import (
    IDEMPOTENCY_KEY_MAX_LENGTH,
    build_idempotency_key,
    fingerprint_key_fragment,
    sanitize_key_fragment,
)


def test_sanitize_key_fragment():
    assert sanitize_key_fragment("Chloé O'Hara - Painting") == "Chloe-OHara---Painting"
    assert sanitize_key_fragment("a" * 60) == "a" * 40
    assert sanitize_key_fragment(None) == ""


def test_fingerprint_keeps_full_name_apart():
    long_a = "Alexandrina Montgomery-Whitfield Smithson - Painting"
    long_b = "Alexandrina Montgomery-Whitfield Smithson - Photography"
    assert sanitize_key_fragment(long_a) == sanitize_key_fragment(long_b)
    assert fingerprint_key_fragment(long_a) != fingerprint_key_fragment(long_b)
    assert fingerprint_key_fragment("Chloé") != fingerprint_key_fragment("Chloe")
    assert fingerprint_key_fragment("Jane Doe - Painting") == "Jane-Doe---Painting-677fd1987510"


def test_idempotency_key_is_deterministic():
    first = build_idempotency_key("item", "1700000000001", 0)
    assert first == "item-1700000000001-0"
    assert build_idempotency_key("item", "1700000000001", 0) == first
    assert build_idempotency_key("item", "1700000000001", 1) != first


def test_idempotency_key_distinguishes_kinds():
    assert build_idempotency_key("item", "42") != build_idempotency_key("inventory", "42")


def test_idempotency_key_respects_length_limit():
    key = build_idempotency_key("update", "x" * 500, 12)
    assert len(key) <= IDEMPOTENCY_KEY_MAX_LENGTH
    assert key.startswith("update-x")
    assert key.endswith("-12")


def test_minor_units():
    assert to_minor_units("12.5") == 1250
    assert to_minor_units(Decimal("0.005")) == 1
    assert to_minor_units(450) == 45000
    assert from_minor_units(1250) == Decimal("12.50")
    assert from_minor_units(None) == Decimal("0.00")
