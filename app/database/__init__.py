"""
Stockage clé-valeur (API REST Vercel KV / Upstash).

Chaque valeur est une chaîne opaque ; l'appelant sérialise lui-même.
"""

from dotenv import load_dotenv
import logging
import os
from typing import Optional

import requests

from app.services.catalog.errors import ConfigurationError, ProviderUnavailable

load_dotenv()

logger = logging.getLogger(__name__)


class KVStoreError(ProviderUnavailable):
    """Le stockage clé-valeur a refusé ou n'a pas répondu."""

    default_message = "Stockage KV indisponible"


class KVStore:
    def __init__(self, url: Optional[str] = None, token: Optional[str] = None, timeout: float = 10, session=None):
        self.url = (url or os.getenv("KV_REST_API_URL") or "").rstrip("/")
        self.token = token or os.getenv("KV_REST_API_TOKEN")
        if not self.url or not self.token:
            raise ConfigurationError("KV not configured")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self):
        return {"Authorization": f"Bearer {self.token}"}

    def get(self, key: str) -> Optional[str]:
        try:
            response = self.session.get(
                f"{self.url}/get/{key}", headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("KV GET %s failed: %s", key, exc)
            raise KVStoreError(str(exc)) from exc

        if not response.ok:
            logger.error("KV GET %s error %s: %s", key, response.status_code, response.text[:200])
            raise KVStoreError(f"KV error {response.status_code}", response.status_code)

        result = response.json().get("result")
        logger.info("KV GET %s - result exists: %s", key, result is not None)
        return result

    def set(self, key: str, value: str) -> bool:
        try:
            response = self.session.post(
                f"{self.url}/set/{key}",
                headers={**self._headers(), "Content-Type": "text/plain"},
                data=value.encode("utf-8"),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("KV SET %s failed: %s", key, exc)
            raise KVStoreError(str(exc)) from exc

        result = response.json().get("result") if response.ok else None
        if result != "OK":
            logger.error("KV SET %s failed: %s", key, response.text[:200])
            raise KVStoreError("Failed to save")
        return True


_kv_store: Optional[KVStore] = None


def get_kv_store() -> KVStore:
    """Retourne l'instance partagée du stockage KV"""
    global _kv_store
    if _kv_store is None:
        _kv_store = KVStore()
    return _kv_store
