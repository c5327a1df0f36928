from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from mangum import Mangum
import logging
import os
import sys

# Ajouter le dossier parent au path pour que les imports fonctionnent sur Vercel
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv()

# Configuration du logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from api.archive import router as archive_router
from api.financials import router as financials_router
from api.health import router as health_router
from api.inventory import router as inventory_router
from api.kv import router as kv_router

app = FastAPI(
    title="Gallery Inventory API",
    description="API du portail d'inventaire de la galerie (catalogue Square)",
    version="1.0.0"
)

# Configuration CORS
allowed_origins_str = os.getenv("FRONTEND_URL", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",")]

# Si on utilise "*" (wildcard), désactiver credentials
allow_credentials = "*" not in allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health_router, prefix="/api", tags=["health"])
app.include_router(inventory_router, prefix="/api", tags=["inventory"])
app.include_router(archive_router, prefix="/api/archive", tags=["archive"])
app.include_router(kv_router, prefix="/api", tags=["kv"])
app.include_router(financials_router, prefix="/api", tags=["financials"])

@app.get("/")
async def root():
    return {
        "message": "Gallery Inventory API - FastAPI",
        "status": "healthy",
        "endpoints": {
            "inventory": "/api/square-inventory",
            "upload": "/api/square-upload",
            "archive": "/api/archive",
            "transfers": "/api/square-transfers",
        }
    }

# Handler pour Vercel
handler = Mangum(app)
