"""FastAPI application exposing the catalog layer to the storefront."""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import BackgroundTasks, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.invalidation.gateway import parse_event
from src.models.config import CatalogConfig
from src.models.data_models import AttributeClass, OrderLine
from src.models.errors import InvalidEvent, NotFound, Unauthorized
from src.pipeline.orchestrator import CatalogRuntime
from src.pipeline.output import JSONOutputFormatter
from src.wantlist.reconciler import queue_wantlist_cleanup


LOOKUP_ATTRIBUTES = {
    "stock": AttributeClass.STOCK,
    "formats": AttributeClass.FORMATS,
    "artists": AttributeClass.ARTIST_NAME,
}


class OrderLineModel(BaseModel):
    product_id: str
    variant_id: Optional[str] = None


class ConfirmedOrder(BaseModel):
    items: List[OrderLineModel]


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


def create_app(config: Optional[CatalogConfig] = None, runtime: Optional[CatalogRuntime] = None) -> FastAPI:
    """
    Create the HTTP app.

    Args:
        config: Configuration used to build a runtime when none is given
        runtime: Pre-built (not yet entered) runtime; entered for the app's lifespan

    Returns:
        FastAPI application
    """
    runtime = runtime or CatalogRuntime(config or CatalogConfig())
    formatter = JSONOutputFormatter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with runtime:
            app.state.runtime = runtime
            yield

    app = FastAPI(title="Catalog cache and invalidation", lifespan=lifespan)

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(exc.to_response().model_dump(), status_code=404)

    @app.post("/api/revalidate")
    async def revalidate(request: Request, x_revalidate_secret: Optional[str] = Header(default=None)):
        """Evict rendered pages affected by a backend change."""
        gateway = runtime.gateway
        try:
            gateway.authenticate(x_revalidate_secret)
        except Unauthorized as e:
            return JSONResponse({"error": e.message}, status_code=401)

        try:
            payload = await request.json()
        except ValueError:
            runtime.logger.invalidation_failed("body is not valid JSON")
            return JSONResponse({"error": "Revalidation failed"}, status_code=500)

        try:
            event = parse_event(payload)
            result = await gateway.invalidate(x_revalidate_secret, event)
        except Unauthorized as e:
            return JSONResponse({"error": e.message}, status_code=401)
        except InvalidEvent as e:
            return JSONResponse({"error": e.message}, status_code=400)
        except Exception:
            runtime.logger.logger.exception("revalidation failed")
            return JSONResponse({"error": "Revalidation failed"}, status_code=500)

        return formatter.format_invalidation(result)

    @app.get("/api/archive/{dimension}/{slug}")
    async def archive(dimension: str, slug: str, page: int = 1, sortBy: Optional[str] = None):
        """One enriched archive page; unknown dimensions and backend failures come back empty."""
        archive_page = await runtime.catalog.archive_page(dimension, slug, page, sortBy)
        return formatter.format_page(archive_page)

    @app.get("/api/products/{attribute}")
    async def product_attributes(attribute: str, handles: str = Query(default="")):
        """Stock, format or artist lookup for comma-separated handles."""
        if attribute not in LOOKUP_ATTRIBUTES:
            raise NotFound(f"Unknown attribute: {attribute}")
        handle_list = [h.strip() for h in handles.split(",") if h.strip()]
        values = await runtime.catalog.attributes_for(handle_list, LOOKUP_ATTRIBUTES[attribute])
        return {attribute: {h: v for h, v in values.items() if v is not None}}

    @app.post("/api/orders/confirmed", status_code=202)
    async def order_confirmed(
        order: ConfirmedOrder,
        background_tasks: BackgroundTasks,
        authorization: Optional[str] = Header(default=None)
    ):
        """Queue post-commit side effects of a confirmed order."""
        account = _bearer(authorization)
        if account is None:
            return JSONResponse({"error": "Not logged in"}, status_code=401)

        tasks = runtime.post_commit_tasks()
        lines = [OrderLine(item.product_id, item.variant_id) for item in order.items]
        queue_wantlist_cleanup(tasks, runtime.reconciler, account, lines)
        queued = len(tasks)
        background_tasks.add_task(tasks.run)
        return {"queued": queued}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "sources": runtime.catalog.describe(),
            "attribute_cache": runtime.attribute_cache.stats(),
        }

    return app
