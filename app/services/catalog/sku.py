import os
import re
import time
from typing import Optional

SUFFIX_LENGTH = 4
MAX_INITIALS = 4
FALLBACK_SKU_STEM = "ART"

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    value = abs(int(value))
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def artist_initials(artist_name: str) -> str:
    """
    'Joan Findley-Perls' -> 'JFP'. Moins de deux lettres: les trois
    premiers caractères du nom ('X' -> 'X', 'Madonna' -> 'MAD' si un seul mot).
    """
    name = (artist_name or "").strip()
    letters = []
    for token in re.split(r"[\s\-]+", name):
        if token and token[0].isalnum():
            letters.append(token[0].upper())
    initials = "".join(letters[:MAX_INITIALS])
    if len(initials) >= 2:
        return initials
    fallback = re.sub(r"\s+", "", name)[:3].upper()
    return fallback or FALLBACK_SKU_STEM


def sku_suffix(unique_seed: Optional[int] = None) -> str:
    seed = unique_seed if unique_seed is not None else int(time.time() * 1000)
    return to_base36(seed)[-SUFFIX_LENGTH:].rjust(SUFFIX_LENGTH, "0")


def generate_sku(artist_name: str, unique_seed: Optional[int] = None, namespace: Optional[str] = None) -> str:
    """
    Génère un SKU court et lisible: `{initiales}{suffixe}`, ou
    `{NS}-{initiales}-{suffixe}` avec un espace de noms (ex. CBG-JFP-1A2B).
    """
    initials = artist_initials(artist_name)
    suffix = sku_suffix(unique_seed)
    if namespace:
        return f"{namespace}-{initials}-{suffix}"
    return f"{initials}{suffix}"


def default_namespace() -> str:
    return os.getenv("SKU_NAMESPACE", "CBG")
