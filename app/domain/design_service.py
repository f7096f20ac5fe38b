# app/domain/design_service.py
import logging
import os
import time
import traceback
import uuid
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

import psutil

from app.config.catalog import ProductCatalog
from app.delivery.schemas.body import (
    GenerateDesignRequest,
    GenerateDesignResponse,
    ProductProfile,
    ValidateArtworkRequest,
    ValidateArtworkResponse,
    ValidationWarning,
)
from app.domain import artwork_validation
from app.domain.errors import DesignError, ProcessingFailure
from app.domain.placement import AXIS_ALIGNED, CompositingPlan, compute_placement
from app.domain.template_geometry import DEFAULT_SAFE_AREA_ID, declared_encoding, resolve_safe_area
from app.infrastructure.cv import image_process
from app.infrastructure.logs.design_log import DesignLog
from app.infrastructure.storage.sink import StorageSink
from app.infrastructure.svg.assembler import assemble
from app.infrastructure.templates.loader import TemplateLoader

# --- LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

def _memory_mb() -> Optional[float]:
    try:
        return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024
    except psutil.Error as mem_error:
        logger.warning(f"Could not get memory info: {mem_error}")
        return None

class DesignService:
    def __init__(
        self,
        catalog: ProductCatalog,
        templates: TemplateLoader,
        storage: StorageSink,
        executor: ThreadPoolExecutor,
        design_log: Optional[DesignLog] = None,
        rotation_mode: str = AXIS_ALIGNED,
        default_safe_area_id: str = DEFAULT_SAFE_AREA_ID,
    ):
        self.catalog = catalog
        self.templates = templates
        self.storage = storage
        self.executor = executor
        self.design_log = design_log
        self.rotation_mode = rotation_mode
        self.default_safe_area_id = default_safe_area_id

    def _render(
        self,
        profile: ProductProfile,
        request: GenerateDesignRequest,
        template_content: str,
        artwork_bytes: bytes,
    ) -> Tuple[CompositingPlan, Optional[bytes], str]:
        """CPU-bound part of a generation: decode, plan, composite, assemble."""
        safe_area_id = profile.safe_area_id or self.default_safe_area_id
        safe_area_template = resolve_safe_area(
            template_content, profile.output_width_px, profile.output_height_px, safe_area_id
        )

        source = image_process.open_source_image(artwork_bytes)
        try:
            plan = compute_placement(
                profile, request.transform, safe_area_template, source.size, self.rotation_mode
            )
            logger.info(f"Source {source.size[0]}x{source.size[1]}, plan: {plan.summary()}")
            png_bytes = image_process.composite(source, plan)
        finally:
            source.close()

        document = assemble(template_content, png_bytes, plan)
        return plan, png_bytes, document

    async def generate_design(self, request: GenerateDesignRequest, user_ip: Optional[str] = None) -> GenerateDesignResponse:
        design_id = request.design_id or str(uuid.uuid4())
        logger.info(f"=== START GENERATION Design ID: {design_id} (product={request.product_id}) ===")
        mem = _memory_mb()
        if mem is not None:
            logger.info(f"Memory usage at start: {mem:.1f}MB for Design ID: {design_id}")
        overall_start_time = time.perf_counter()

        try:
            # STAGE 1: inputs. Artwork is checked before anything is fetched
            logger.info(f"Stage 1/4: Resolving product and loading template '{request.template_url}'.")
            profile = self.catalog.get(request.product_id)
            _, artwork_bytes = image_process.decode_artwork_data_url(request.artwork_data_url)
            template_content = await self.templates.load(request.template_url)

            # STAGE 2+3: plan and composite off the event loop
            logger.info(f"Stage 2/4: Computing placement and compositing for Design ID: {design_id}")
            loop = asyncio.get_running_loop()
            stage_start = time.perf_counter()
            plan, png_bytes, document = await loop.run_in_executor(
                self.executor, self._render, profile, request, template_content, artwork_bytes
            )
            logger.info(f"Stage 3/4: Compositing finished in {time.perf_counter() - stage_start:.2f}s "
                        f"({plan.final_width}x{plan.final_height} at {plan.position_x},{plan.position_y})")
            if png_bytes is None:
                logger.warning(f"Design ID {design_id}: artwork does not overlap the safe area, nothing placed.")

            # STAGE 4: storage. SVG last so it only exists once everything else succeeded
            logger.info(f"Stage 4/4: Storing outputs for Design ID: {design_id}")
            base_name = f"{design_id}-{profile.id}"
            raster_url = None
            stored = False
            try:
                if png_bytes is not None:
                    raster_url = await self.storage.store(f"{base_name}.png", png_bytes)
                file_url = await self.storage.store(f"{base_name}.svg", document.encode(declared_encoding(document)))
                stored = True
            except DesignError:
                raise
            except Exception as e:
                raise ProcessingFailure("store", f"{type(e).__name__}: {e}", e) from e
            finally:
                # Also runs on cancellation (endpoint timeout); the delete is shielded from it
                if not stored and raster_url is not None:
                    await asyncio.shield(self._discard(f"{base_name}.png"))

            if self.design_log is not None:
                await self.design_log.append({
                    "design_id": design_id,
                    "product_id": profile.id,
                    "file_url": file_url,
                    "raster_url": raster_url,
                    "user_ip": user_ip,
                })

            overall_duration = time.perf_counter() - overall_start_time
            mem = _memory_mb()
            if mem is not None:
                logger.info(f"Memory after generation: {mem:.1f}MB for Design ID: {design_id}")
            logger.info(f"=== COMPLETED GENERATION Design ID: {design_id} in {overall_duration:.2f}s ===")
            return GenerateDesignResponse(
                design_id=design_id,
                file_url=file_url,
                raster_url=raster_url,
                placed=png_bytes is not None,
            )

        except DesignError as e:
            logger.error(f"=== GENERATION FAILED for Design ID {design_id}: {type(e).__name__}: {e.message} ===")
            raise
        except Exception as e:
            logger.error(f"=== CRITICAL ERROR in generate_design for Design ID {design_id}: {e}\n{traceback.format_exc()} ===")
            raise

    async def _discard(self, name: str) -> None:
        try:
            await self.storage.delete(name)
        except Exception as e:
            logger.warning(f"Could not remove partial output {name}: {type(e).__name__}: {e}")

    def _measure(self, payload: bytes) -> Tuple[int, int]:
        img = image_process.open_source_image(payload)
        try:
            return img.size
        finally:
            img.close()

    async def validate_artwork(self, request: ValidateArtworkRequest) -> ValidateArtworkResponse:
        profile = self.catalog.get(request.product_id)
        mime, payload = image_process.parse_data_url(request.artwork_data_url)

        warnings = artwork_validation.validate_artwork_file(len(payload), mime)
        if artwork_validation.can_proceed(warnings) and mime != "image/svg+xml":
            loop = asyncio.get_running_loop()
            try:
                width, height = await loop.run_in_executor(self.executor, self._measure, payload)
            except ProcessingFailure:
                warnings.append(ValidationWarning(
                    type="unsupported_format",
                    message="Failed to load image. Please try a different file.",
                    severity="error",
                ))
            else:
                warnings += artwork_validation.validate_artwork_resolution(width, height, profile)

        return ValidateArtworkResponse(
            can_proceed=artwork_validation.can_proceed(warnings),
            warnings=warnings,
        )

    async def get_design(self, design_id: str) -> Optional[Dict]:
        if self.design_log is None:
            return None
        return await self.design_log.find(design_id)

    def products(self) -> List[ProductProfile]:
        return self.catalog.all()
