"""
Script pour exporter l'inventaire Square (fiches œuvres) en JSON ou CSV.
Utile pour un inventaire papier ou une vérification hors portail.

Usage:
    python scripts/export_inventory.py [--artist "Jane Doe"] [--format csv] [--output inventaire.csv]
"""

import argparse
import csv
import io
import json
import logging
import sys
from pathlib import Path

# Ajouter le dossier parent au path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

from app.services.catalog.reader import CatalogReader
from app.services.square.client import SquareClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "sku", "title", "artistName", "type", "medium", "dimensions",
    "price", "quantity", "providerItemId", "providerVariationId",
]


def export_inventory(reader, artist=None, fmt="json") -> str:
    """Retourne l'inventaire sérialisé dans le format demandé."""
    records = reader.list_artworks(artist)
    rows = [r.model_dump(mode="json", by_alias=True) for r in records]
    logger.info(f"Exporting {len(rows)} items")

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
        return buffer.getvalue()

    return json.dumps(rows, indent=2, ensure_ascii=False)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Exporter l'inventaire Square")
    parser.add_argument("--artist", help="Filtrer par nom d'artiste (préfixe)")
    parser.add_argument("--format", choices=["json", "csv"], default="json")
    parser.add_argument("--output", help="Fichier de sortie (stdout par défaut)")
    args = parser.parse_args(argv)

    load_dotenv()
    content = export_inventory(CatalogReader(SquareClient()), args.artist, args.format)

    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        logger.info(f"✅ Inventory written to {args.output}")
    else:
        print(content)


if __name__ == "__main__":
    main()
