"""
Endpoint de santé minimal pour tester si Vercel fonctionne
"""
from fastapi import APIRouter
import os

router = APIRouter()

@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "message": "Backend is alive!",
        "square_configured": bool(os.getenv("SQUARE_ACCESS_TOKEN") and os.getenv("SQUARE_LOCATION_ID")),
        "kv_configured": bool(os.getenv("KV_REST_API_URL") and os.getenv("KV_REST_API_TOKEN")),
    }
