# app/main.py
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from concurrent.futures import ThreadPoolExecutor
import threading
import logging
import os

from app.config.settings import settings
from app.config.catalog import ProductCatalog
from app.delivery.api.design import router
from app.domain.design_service import DesignService
from app.infrastructure.logs.design_log import DesignLog
from app.infrastructure.storage.sink import StorageConfig, build_storage
from app.infrastructure.templates.loader import TemplateLoader

logging.getLogger("PIL").setLevel(logging.WARNING)
logger = logging.getLogger("uvicorn.error")

# --- Lazy service bootstrap state ---
_service_lock = threading.Lock()

def _ensure_service(app: FastAPI) -> None:
    with _service_lock:  # Always acquire lock first
        if getattr(app.state, "design_service", None) is not None:
            return
        logger.info("Initializing DesignService (lazy-init)...")
        storage_config = StorageConfig.from_settings(settings)
        app.state.design_service = DesignService(
            catalog=ProductCatalog.from_file(settings.PRODUCT_CATALOG_PATH),
            templates=TemplateLoader(settings.TEMPLATES_DIR, timeout=settings.REQUEST_TIMEOUT),
            storage=build_storage(storage_config, executor=app.state.executor),
            executor=app.state.executor,
            design_log=DesignLog(settings.DESIGN_LOG_PATH),
            rotation_mode=settings.ROTATION_MODE,
            default_safe_area_id=settings.DEFAULT_SAFE_AREA_ID,
        )
        logger.info(f"Service ready (storage={storage_config.storage_type}, rotation={settings.ROTATION_MODE}).")

@asynccontextmanager
async def lifespan(app: FastAPI):
    max_workers = min(4, os.cpu_count() or 1)  # Conservative limit
    app.state.executor = ThreadPoolExecutor(max_workers=max_workers)
    logger.info(f"Service '{settings.PROJECT_NAME}' starting (mode: {settings.ENVIRONMENT}).")
    logger.info(f"Shared ThreadPoolExecutor created with {max_workers} workers.")
    yield
    logger.info("Shutting down ThreadPoolExecutor...")
    app.state.executor.shutdown(wait=True)
    logger.info("Service stopped.")

app = FastAPI(
    title="Print Design Service",
    description="Composites user artwork into product template safe areas and produces print-ready SVG documents",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lazy-load only for API routes
@app.middleware("http")
async def lazy_boot(request: Request, call_next):
    if request.url.path.startswith(settings.API_V1_STR):
        _ensure_service(request.app)
    return await call_next(request)

@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": f"Invalid or missing fields: {', '.join(fields)}"},
    )

@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

app.include_router(router, prefix=settings.API_V1_STR)

# Local storage URLs point back at this service
if settings.STORAGE_TYPE.lower() == "local":
    app.mount("/uploads", StaticFiles(directory=settings.LOCAL_STORAGE_PATH, check_dir=False), name="uploads")

@app.get("/")
async def root():
    return {"message": "Print Design Service", "version": "1.0.0", "status": "ok"}

@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Print Design 1.0", "service_ready": getattr(app.state, "design_service", None) is not None}
