from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import get_store
from stores.mongo import MongoStore
from utils.errors import MarketError

# ENV
from config.env import ENV, LOG_LEVEL, CORS_ALLOWED_ORIGINS, validate_production_env

# ROUTES
from routes.auth import router as auth_router
from routes.listings import router as listings_router
from routes.purchases import router as purchases_router
from routes.messages import router as messages_router
from routes.uploads import router as uploads_router
from routes.admin import router as admin_router
from routes.dashboard import router as dashboard_router

# WORKERS
from workers.audit_cleanup_worker import audit_cleanup_worker

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("farmlink")

validate_production_env()
logger.info("ENV: %s", ENV)

app = FastAPI(
    title="FarmLink API",
    version="1.0.0",
    docs_url=None if ENV == "production" else "/docs",
    redoc_url=None if ENV == "production" else "/redoc",
    openapi_url=None if ENV == "production" else "/openapi.json",
)

# -----------------------------
# CORS
# -----------------------------

allowed_origins = [origin.strip() for origin in CORS_ALLOWED_ORIGINS if origin.strip()]
if not allowed_origins:
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# ERRORS
# -----------------------------

@app.exception_handler(MarketError)
async def market_error_handler(request: Request, exc: MarketError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# -----------------------------
# ROUTES
# -----------------------------

app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(purchases_router)
app.include_router(messages_router)
app.include_router(uploads_router)
app.include_router(admin_router)
app.include_router(dashboard_router)

# -----------------------------
# VIEWS THE GATE REDIRECTS TO
# -----------------------------

@app.get("/")
async def home():
    return {"app": "FarmLink", "view": "home"}

@app.get("/login")
async def login_view():
    return {"view": "login", "action": "/api/auth/login"}

# -----------------------------
# HEALTH CHECKS
# -----------------------------

@app.get("/api/health")
async def health():

    return {"status": "ok"}

@app.get("/api/health/db")
async def health_db(store=Depends(get_store)):
    await store.ping()
    return {"status": "store connected"}

# -----------------------------
# STARTUP
# -----------------------------

@app.on_event("startup")
async def startup():
    store = get_store()
    if isinstance(store, MongoStore):
        await store.ensure_indexes()
    asyncio.create_task(audit_cleanup_worker())
