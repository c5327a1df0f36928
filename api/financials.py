from fastapi import APIRouter, Depends, Query
from typing import Optional
from app.dependencies import get_inventory_service, require_finance, to_http_exception
from app.models.member import Member
from app.services.catalog.errors import CatalogError
from app.services.catalog.service import InventoryService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/square-transfers")
def list_transfers(
    begin_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
    member: Member = Depends(require_finance),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Virements Square de la période, ventilés en ventes, taxes et frais.
    """
    try:
        settlements = service.list_settlements(begin_time, end_time)
    except CatalogError as e:
        logger.error(f"Square transfers error: {e}")
        raise to_http_exception(e)
    return {"success": True, "settlements": [s.model_dump() for s in settlements]}
