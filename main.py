# main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.routers import auth_router, inventory_router, coupons_router
from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.db import init_models
from app.middleware.activity_logger import ActivityLoggerMiddleware

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Storefront API",
    description="FastAPI backend for coupons and inventory tracking",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ActivityLoggerMiddleware)

# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Backend is running"}

# Register routers
for router in (auth_router, inventory_router, coupons_router):
    app.include_router(router)


@app.on_event("startup")
async def on_startup():
    await init_models()
