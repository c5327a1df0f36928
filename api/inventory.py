from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from typing import Any, Dict, List, Optional
from app.dependencies import get_current_member, get_inventory_service, require_inventory_admin, to_http_exception
from app.models.artwork import DeleteItemRequest, InventoryUpdateRequest
from app.models.member import Member
from app.services.catalog.errors import CatalogError
from app.services.catalog.reader import filter_by_artist
from app.services.catalog.service import InventoryService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/square-inventory")
def list_inventory(
    response: Response,
    artistName: Optional[str] = Query(None),
    member: Member = Depends(get_current_member),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Inventaire Square converti en fiches œuvres.
    Un membre non admin ne voit que ses propres œuvres.
    """
    artist_filter = artistName if member.is_admin else member.full_name
    try:
        all_items = service.list_inventory()
    except CatalogError as e:
        logger.error(f"Square inventory error: {e}")
        raise to_http_exception(e)

    items = filter_by_artist(all_items, artist_filter)
    response.headers["Cache-Control"] = "no-store"
    return {
        "success": True,
        "items": [item.model_dump(mode="json", by_alias=True) for item in items],
        "totalCount": len(items),
        "allCount": len(all_items),
    }


@router.post("/square-upload")
def upload_items(
    records: List[Dict[str, Any]] = Body(...),
    attempt: int = Query(0, ge=0),
    member: Member = Depends(get_current_member),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Crée ou met à jour un lot d'œuvres dans Square.
    Toujours un résultat par œuvre soumise, dans l'ordre.
    Un membre non admin ne met à jour que ses propres œuvres.
    """
    if not member.is_admin:
        # Un membre ne publie que sous son propre nom
        records = [{**{k: v for k, v in r.items() if k != "artist_name"}, "artistName": member.full_name} for r in records]

    try:
        report = service.write_member_batch(records, member, attempt=attempt)
    except CatalogError as e:
        raise to_http_exception(e)

    return {
        "success": report.all_succeeded,
        "partial": report.partial,
        "results": [r.model_dump(mode="json", by_alias=True) for r in report.results],
    }


@router.post("/square-inventory-update")
def update_inventory(
    payload: InventoryUpdateRequest,
    member: Member = Depends(get_current_member),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Stock absolu (`quantity`) ou ajustement relatif (`delta`).
    Un membre non admin ne touche qu'au stock de ses propres œuvres.
    """
    try:
        if payload.delta is not None:
            quantity = service.adjust_quantity(payload.variation_id, payload.delta, payload.request_id, member)
        else:
            quantity = service.update_quantity(payload.variation_id, payload.quantity, payload.request_id, member)
    except CatalogError as e:
        logger.error(f"Square inventory update error: {e}")
        raise to_http_exception(e)
    return {"success": True, "quantity": quantity}


@router.post("/square-delete")
def delete_item(
    payload: DeleteItemRequest,
    member: Member = Depends(require_inventory_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    if not payload.item_id:
        raise HTTPException(status_code=400, detail="Item ID is required")
    try:
        deleted_ids = service.delete_item(payload.item_id)
    except CatalogError as e:
        logger.error(f"Square delete error: {e}")
        raise to_http_exception(e)
    return {"success": True, "deletedIds": deleted_ids}
