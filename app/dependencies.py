from typing import Optional

from fastapi import Depends, HTTPException, Request

from app.database import get_kv_store
from app.models.member import FINANCE_ROLES, INVENTORY_ADMIN_ROLES, Member
from app.repositories.archive_repo import ArchiveRepository
from app.services.catalog.errors import (
    CatalogError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OwnershipError,
    ProviderUnavailable,
    ValidationError,
)
from app.services.catalog.service import InventoryService
from app.services.members import SupabaseError, get_member_for_token
from app.services.square.client import SquareClient

ERROR_STATUS = [
    (ConfigurationError, 500),
    (NotFoundError, 404),
    (OwnershipError, 403),
    (ConflictError, 409),
    (ValidationError, 400),
    (ProviderUnavailable, 502),
]


def to_http_exception(exc: CatalogError) -> HTTPException:
    """Traduit une erreur catalogue en réponse HTTP"""
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=500, detail=exc.message)


def _access_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get("sb-access-token")


async def get_current_member(request: Request) -> Member:
    """Dépendance FastAPI: membre connecté via son jeton Supabase"""
    token = _access_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Authentification requise")

    try:
        member = get_member_for_token(token)
    except SupabaseError as e:
        raise HTTPException(status_code=500, detail=f"Erreur serveur: {str(e)}")

    if member is None:
        raise HTTPException(status_code=401, detail="Session invalide")
    if member.status != "active":
        raise HTTPException(status_code=403, detail="Compte désactivé")
    return member


def require_roles(*roles):
    allowed = set(roles)

    async def checker(member: Member = Depends(get_current_member)) -> Member:
        if member.role not in allowed:
            raise HTTPException(status_code=403, detail="Accès réservé")
        return member

    return checker


require_inventory_admin = require_roles(*INVENTORY_ADMIN_ROLES)
require_finance = require_roles(*FINANCE_ROLES)

_service: Optional[InventoryService] = None


def get_inventory_service() -> InventoryService:
    """Instance partagée du service d'inventaire (Square + archive KV)"""
    global _service
    if _service is None:
        try:
            store = SquareClient()
        except ConfigurationError as e:
            raise to_http_exception(e)

        try:
            archive = ArchiveRepository(get_kv_store())
        except ConfigurationError:
            # L'inventaire reste utilisable sans archive
            archive = None
        _service = InventoryService(store, archive)
    return _service
