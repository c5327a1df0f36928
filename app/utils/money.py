from decimal import ROUND_HALF_UP, Decimal


def to_minor_units(price) -> int:
    """12.5 -> 1250 (centimes, arrondi au plus proche)"""
    return int((Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount) -> Decimal:
    """1250 -> Decimal('12.50')"""
    return (Decimal(int(amount or 0)) / 100).quantize(Decimal("0.01"))
