import hashlib
import re
import unicodedata

# Limite Square pour une clé d'idempotence
IDEMPOTENCY_KEY_MAX_LENGTH = 128


def strip_accents(value: str) -> str:
    """Retire les diacritiques ('Chloé' -> 'Chloe')."""
    s = unicodedata.normalize('NFKD', str(value))
    return ''.join(ch for ch in s if not unicodedata.combining(ch))


def sanitize_key_fragment(value, max_length: int = 40) -> str:
    """
    Prépare un fragment lisible pour une clé d'idempotence ou un id temporaire:
    - retire les accents
    - supprime tout sauf lettres, chiffres, espaces et tirets
    - remplace les espaces par des tirets
    - tronque à max_length
    Exemple: 'Chloé O'Hara - Painting' -> 'Chloe-OHara---Painting'
    """
    if value is None:
        return ""
    s = strip_accents(value)
    s = re.sub(r'[^A-Za-z0-9\s-]', '', s)
    s = re.sub(r'\s+', '-', s.strip())
    return s[:max_length]


def build_idempotency_key(kind: str, entity_id, attempt: int = 0) -> str:
    """
    Construit une clé d'idempotence déterministe à partir du type d'opération,
    de l'identifiant stable de l'entité et du numéro de tentative.

    Un vrai retry réutilise la même tentative (donc la même clé) ; une
    resoumission volontaire incrémente `attempt`.
    """
    suffix = f"-{int(attempt)}"
    entity = sanitize_key_fragment(entity_id, max_length=IDEMPOTENCY_KEY_MAX_LENGTH)
    budget = IDEMPOTENCY_KEY_MAX_LENGTH - len(kind) - len(suffix) - 1
    return f"{kind}-{entity[:budget]}{suffix}"


def fingerprint_key_fragment(value, max_length: int = 40) -> str:
    """
    Fragment lisible suivi d'une empreinte sha1 du texte exact.
    Deux valeurs qui ne diffèrent qu'après la troncature, ou par un accent,
    donnent des fragments distincts.
    Exemple: 'Chloé - Print' -> 'Chloe---Print-<12 caractères hex>'
    """
    digest = hashlib.sha1(str(value or "").encode("utf-8")).hexdigest()[:12]
    return f"{sanitize_key_fragment(value, max_length)}-{digest}"
