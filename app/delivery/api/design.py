# app/delivery/api/design.py
from fastapi import APIRouter, Request, Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from app.delivery.schemas.body import (
    GenerateDesignRequest,
    GenerateDesignResponse,
    ValidateArtworkRequest,
    ValidateArtworkResponse,
)
from app.domain.errors import DesignError
from app.config.settings import settings
import secrets
import threading
import logging
import traceback
import asyncio

router = APIRouter()
security = HTTPBasic()
logger = logging.getLogger("uvicorn.error")

def verify_basic_auth(creds: HTTPBasicCredentials = Depends(security)) -> None:
    ok_user = secrets.compare_digest(creds.username, settings.BASIC_AUTH_USERNAME)
    ok_pass = secrets.compare_digest(creds.password, settings.BASIC_AUTH_PASSWORD)
    if not (ok_user and ok_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

def get_design_service(request: Request):
    service = getattr(request.app.state, "design_service", None)
    if service is None:
        logger.error("Design service not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready. Please try again in a moment.",
        )
    return service

def _to_http(e: DesignError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)

@router.post(
    "/generate-design",
    response_model=GenerateDesignResponse,
    dependencies=[Depends(verify_basic_auth)],
)
async def generate_design(request: Request, body: GenerateDesignRequest, service=Depends(get_design_service)):
    request_id = body.design_id or "-"
    logger.info(f"=== ENDPOINT START generate-design product={body.product_id} id={request_id} (threads={threading.active_count()}) ===")

    if await request.is_disconnected():
        logger.warning(f"[{request_id}] Client already disconnected")
        raise HTTPException(status_code=499, detail="Client closed request")

    try:
        user_ip = request.client.host if request.client else None
        result = await asyncio.wait_for(
            service.generate_design(body, user_ip=user_ip),
            timeout=settings.ENDPOINT_TIMEOUT_SECONDS,
        )
        logger.info(f"=== ENDPOINT SUCCESS for {result.design_id} ===")
        return result

    except asyncio.TimeoutError:
        logger.error(f"=== ENDPOINT TIMEOUT for product {body.product_id} after {settings.ENDPOINT_TIMEOUT_SECONDS}s ===")
        raise HTTPException(status_code=504, detail="Design generation timed out")
    except DesignError as e:
        logger.warning(f"=== ENDPOINT REJECTED ({type(e).__name__}): {e.message} ===")
        raise _to_http(e)
    except Exception as e:
        logger.error(f"=== ENDPOINT ERROR for product {body.product_id}: {e} ===\n{traceback.format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate design.",
        )

@router.post(
    "/validate-artwork",
    response_model=ValidateArtworkResponse,
    dependencies=[Depends(verify_basic_auth)],
)
async def validate_artwork(body: ValidateArtworkRequest, service=Depends(get_design_service)):
    try:
        return await service.validate_artwork(body)
    except DesignError as e:
        raise _to_http(e)

@router.get("/design/{design_id}", dependencies=[Depends(verify_basic_auth)])
async def get_design(design_id: str, service=Depends(get_design_service)):
    entry = await service.get_design(design_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Design {design_id} not found")
    return entry

@router.get("/products")
async def list_products(service=Depends(get_design_service)):
    return [p.model_dump() for p in service.products()]
