from fastapi import APIRouter, Depends, HTTPException
from app.dependencies import get_inventory_service, require_inventory_admin, to_http_exception
from app.models.artwork import ArchivedArtwork, ArchiveRequest
from app.models.member import Member
from app.services.catalog.errors import ArchiveWriteError, CatalogError
from app.services.catalog.service import InventoryService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/")
def list_archive(
    member: Member = Depends(require_inventory_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    try:
        items = service.list_archive()
    except CatalogError as e:
        raise to_http_exception(e)
    return {"items": [item.model_dump(mode="json", by_alias=True) for item in items]}


@router.post("/")
def archive_item(
    payload: ArchiveRequest,
    member: Member = Depends(require_inventory_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Retire l'œuvre de Square et l'ajoute à l'archive.
    """
    try:
        archived = service.archive_one(payload.item_id, member)
    except ArchiveWriteError as e:
        # Supprimé de Square mais pas archivé: on renvoie l'œuvre pour la recréer
        logger.error(f"Archive write failed for {payload.item_id}: {e}")
        raise HTTPException(
            status_code=502,
            detail={"message": e.message, "item": e.record.model_dump(mode="json", by_alias=True)},
        )
    except CatalogError as e:
        logger.error(f"Archive error for {payload.item_id}: {e}")
        raise to_http_exception(e)
    return {"success": True, "item": archived.model_dump(mode="json", by_alias=True)}


@router.post("/restore")
def restore_item(
    archived: ArchivedArtwork,
    member: Member = Depends(require_inventory_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Recrée l'œuvre archivée dans Square (nouvel article) et la retire de l'archive.
    """
    try:
        restored = service.restore_one(archived, member)
    except CatalogError as e:
        logger.error(f"Restore error for {archived.provider_item_id}: {e}")
        raise to_http_exception(e)
    return {"success": True, "item": restored.model_dump(mode="json", by_alias=True)}
