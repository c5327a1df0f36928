from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from app.database import KVStore, get_kv_store
from app.dependencies import get_current_member, to_http_exception
from app.models.member import Member
from app.services.catalog.errors import CatalogError

router = APIRouter()


def get_kv() -> KVStore:
    try:
        return get_kv_store()
    except CatalogError as e:
        raise to_http_exception(e)


class KVSetRequest(BaseModel):
    key: str
    value: str  # déjà sérialisé par le client


@router.get("/kv")
def kv_get(key: str = Query(..., min_length=1), member: Member = Depends(get_current_member), kv: KVStore = Depends(get_kv)):
    try:
        return {"value": kv.get(key)}
    except CatalogError as e:
        raise to_http_exception(e)


@router.post("/kv")
def kv_set(payload: KVSetRequest, member: Member = Depends(get_current_member), kv: KVStore = Depends(get_kv)):
    try:
        kv.set(payload.key, payload.value)
    except CatalogError as e:
        raise to_http_exception(e)
    return {"success": True, "result": "OK"}
