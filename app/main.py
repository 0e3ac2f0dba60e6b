from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from app.api.v1 import index
from app.api.v1 import auth
from app.api.v1 import enums
from app.api.v1 import organizations
from app.api.v1 import species
from app.api.v1 import collections
from app.api.v1 import raw_material_batches
from app.api.v1 import finished_goods
from app.api.v1 import labs
from app.api.v1 import supply_chain
from app.api.v1 import qr_codes
from app.api.v1 import documents
from app.api.v1 import distributor
from app.api.v1 import admin

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.db import core

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} starting")
    if not settings.notary_base_url:
        logger.warning("NOTARY_BASE_URL is not set; notarization is disabled")
    yield
    core.engine.dispose()
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Middlewares
origins = []

if settings.allowed_hosts:
    origins = settings.allowed_hosts.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routes
app.include_router(index.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(enums.router, prefix="/api/v1/enums", tags=["Enums"])
app.include_router(
    organizations.router, prefix="/api/v1/organizations", tags=["Organizations"])
app.include_router(species.router, prefix="/api/v1/species", tags=["Species"])
app.include_router(
    collections.router, prefix="/api/v1/collections", tags=["Collections"])
app.include_router(raw_material_batches.router,
                   prefix="/api/v1/raw-material-batches", tags=["Raw Material Batches"])
app.include_router(finished_goods.router,
                   prefix="/api/v1/finished-goods", tags=["Finished Goods"])
app.include_router(labs.router, prefix="/api/v1/labs", tags=["Labs"])
app.include_router(supply_chain.router,
                   prefix="/api/v1/supply-chain-events", tags=["Supply Chain"])
app.include_router(qr_codes.router, prefix="/api/v1/qr-codes", tags=["QR Codes"])
app.include_router(documents.router, prefix="/api/v1/documents", tags=["Documents"])
app.include_router(
    distributor.router, prefix="/api/v1/distributor", tags=["Distributor"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])

# Static files serving
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=None,
    )
