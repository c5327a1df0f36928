"""
Encodage des attributs structurés (medium, dimensions, remises) dans la
description texte d'un article Square, et décodage inverse.

Format produit:

    <description libre>

    Medium: <medium>
    Dimensions: <dimensions>
    Discounts: <remises>        (seulement si renseigné)
"""

import re
from typing import NamedTuple, Tuple

MEDIUM_LABEL = "Medium"
DIMENSIONS_LABEL = "Dimensions"
DISCOUNTS_LABEL = "Discounts"

# Seules les balises que produit l'éditeur Square comptent comme du HTML,
# attributs en `nom=valeur` uniquement
_HTML_TAG_RE = re.compile(
    r"</?(?:p|br|div|span|strong|b|em|i|u|s|a|ul|ol|li|h[1-6]|blockquote)"
    r"(?:\s+[a-zA-Z-]+=(?:\"[^\"]*\"|'[^']*'|[^\s>]+))*\s*/?>",
    re.IGNORECASE,
)
_DIMENSIONS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*[\"']?\s*x\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


class DecodedDescription(NamedTuple):
    clean_description: str
    medium: str
    dimensions: str
    discounts: str
    height: str
    width: str


def encode_description(record) -> str:
    """Construit la description Square à partir d'un ArtworkRecord."""
    lines = [
        f"{MEDIUM_LABEL}: {record.medium or ''}".rstrip(),
        f"{DIMENSIONS_LABEL}: {record.dimensions_text}".rstrip(),
    ]
    if record.discounts and record.discounts.strip():
        lines.append(f"{DISCOUNTS_LABEL}: {record.discounts.strip()}")

    free_text = (record.description or "").strip()
    block = "\n".join(lines)
    return f"{free_text}\n\n{block}" if free_text else block


def html_to_text(value: str) -> str:
    """
    Square renvoie parfois description_html au lieu du texte brut:
    <br> et </p> deviennent des retours à la ligne, les balises sont retirées.
    """
    text = re.sub(r"<br\s*/?>", "\n", value, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n", text, flags=re.IGNORECASE)
    text = _HTML_TAG_RE.sub("", text)
    # &amp; en dernier pour ne pas décoder deux fois
    text = text.replace("&lt;", "<").replace("&gt;", ">").replace("&quot;", '"').replace("&amp;", "&")
    return text.strip()


def looks_like_html(value: str) -> bool:
    return bool(_HTML_TAG_RE.search(value or ""))


def _extract_label(text: str, label: str) -> Tuple[str, str]:
    """Retourne (valeur, texte sans la ligne) pour le premier `Label:` trouvé."""
    pattern = re.compile(rf"^[^\S\n]*{label}:[^\S\n]*([^\n]*)\n?", re.IGNORECASE | re.MULTILINE)
    match = pattern.search(text)
    if not match:
        return "", text
    return match.group(1).strip(), text[:match.start()] + text[match.end():]


def parse_dimensions(dimensions: str) -> Tuple[str, str]:
    """
    Extrait (hauteur, largeur) d'un texte du type `24" x 36"`.
    Pas de correspondance: deux chaînes vides.
    """
    match = _DIMENSIONS_RE.search(dimensions or "")
    if not match:
        return "", ""
    return match.group(1), match.group(2)


def decode_description(text: str) -> DecodedDescription:
    raw = text or ""
    if looks_like_html(raw):
        raw = html_to_text(raw)

    medium, remaining = _extract_label(raw, MEDIUM_LABEL)
    dimensions, remaining = _extract_label(remaining, DIMENSIONS_LABEL)
    discounts, remaining = _extract_label(remaining, DISCOUNTS_LABEL)
    height, width = parse_dimensions(dimensions)

    return DecodedDescription(
        clean_description=remaining.strip(),
        medium=medium,
        dimensions=dimensions,
        discounts=discounts,
        height=height,
        width=width,
    )
