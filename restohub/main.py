"""
FastAPI Application Entry Point

RestoHub Restaurant Backend - thin HTTP handlers over the data service.

Endpoints:
    - GET  /health: Local/remote store and cache status
    - GET  /api/collections/{name}: Raw collection read (with backend tag)
    - /api/menu, /api/menu-availability: Menu and availability
    - /api/orders: Order log, status changes and cancellation
    - /api/analytics, /api/order-statistics: Derived data
    - /api/inventory, /api/combos, /api/offers, /api/todays-special
    - /api/tasks, /api/credentials: Staff tools
    - /api/migration/report, /api/migration/run: Order → profile migration
    - /api/cache, /api/export/{kind}: Operations

Run:
    uvicorn restohub.main:app --port 8001

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

import redis
from fastapi import APIRouter, Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from restohub.core.cache import TTLCache
from restohub.core.config import RecomputeMode, get_settings, setup_logging
from restohub.core.exceptions import DataAccessError, ValidationError
from restohub.schemas import HealthResponse
from restohub.services.backend_selector import DOCUMENT
from restohub.services.data import DataService, build_data_service, get_collection
from restohub.services.exporter import SpreadsheetExporter
from restohub.services.migration import OrderMigrator
from restohub.services.profiles import BaseProfileStore, get_profile_store
from restohub.services.statistics import compute_order_statistics

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def _data(request: Request) -> DataService:
    return request.app.state.data


def _migrator(request: Request) -> OrderMigrator:
    return OrderMigrator(
        request.app.state.data,
        request.app.state.profiles,
        min_confidence=settings.migration_min_confidence,
        max_report_age_seconds=settings.migration_report_max_age_seconds,
    )


def _require(value: Any, name: str) -> Any:
    if value in (None, ""):
        raise ValidationError(f"{name} is required")
    return value


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """Verify store, profile and broker connectivity."""
    status = await _data(request).health()

    # Check profile store
    profile_status = "healthy"
    try:
        if not await request.app.state.profiles.health_check():
            profile_status = "unhealthy"
    except Exception as e:
        profile_status = f"unhealthy: {str(e)}"
        logger.error(f"Profile store health check failed: {e}")

    # Check Redis (Celery broker)
    broker_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        broker_status = f"unhealthy: {str(e)}"
        logger.warning(f"Redis health check failed: {e}")

    required = [status["remote"] in ("healthy", "disabled"), profile_status == "healthy"]
    # The broker only matters when order mutations depend on it
    if settings.analytics_recompute_mode == RecomputeMode.DEFERRED:
        required.append(broker_status == "healthy")

    return HealthResponse(
        status="healthy" if all(required) else "degraded",
        local_store=status["local"],
        remote_store=status["remote"],
        profile_store=profile_status,
        broker=broker_status,
        cache_entries=status["cacheEntries"],
        timestamp=datetime.now(),
    )


@router.get("/api/collections/{name}", tags=["Collections"])
async def read_collection(name: str, request: Request) -> dict[str, Any]:
    data = _data(request)
    if get_collection(name).kind == DOCUMENT:
        result = await data.read_document(name)
    else:
        result = await data.read_collection(name)
    return {
        "success": True,
        "name": name,
        "records": result.records,
        "backend": result.backend,
        "fallback": result.fallback,
        "cached": result.cached,
    }


# =============================================================================
# MENU & AVAILABILITY
# =============================================================================

@router.get("/api/menu", tags=["Menu"])
async def get_menu(
    request: Request,
    category: Optional[str] = Query(None),
    grouped: bool = Query(False),
) -> dict[str, Any]:
    menu = _data(request).menu
    if grouped:
        return {"success": True, "menu": await menu.grouped()}
    items = await menu.by_category(category) if category else await menu.list_items()
    return {"success": True, "menu": items}


@router.post("/api/menu", tags=["Menu"])
async def add_menu_item(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    item = await _data(request).menu.add_item(payload)
    return {"success": True, "item": item}


@router.put("/api/menu/{item_no}", tags=["Menu"])
async def update_menu_item(
    item_no: str, request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    item = await _data(request).menu.update_item(item_no, payload)
    return {"success": True, "item": item}


@router.delete("/api/menu/{item_no}", tags=["Menu"])
async def delete_menu_item(item_no: str, request: Request) -> dict[str, Any]:
    await _data(request).menu.delete_item(item_no)
    return {"success": True, "message": f"Menu item {item_no} deleted"}


@router.get("/api/menu-availability", tags=["Menu"])
async def get_availability(request: Request) -> dict[str, Any]:
    return {"items": await _data(request).availability.get_all()}


@router.post("/api/menu-availability", tags=["Menu"])
async def set_availability(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    entry = await _data(request).availability.set_item(
        _require(payload.get("itemNo"), "itemNo"),
        available=payload.get("available"),
        price=payload.get("price"),
    )
    return {"success": True, "message": "Availability updated successfully", "item": entry}


@router.put("/api/menu-availability", tags=["Menu"])
async def bulk_availability(request: Request, payload: Any = Body(...)) -> dict[str, Any]:
    updates = payload if isinstance(payload, list) else [payload]
    result = await _data(request).availability.bulk_update(updates)
    return result.to_dict()


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/api/orders", tags=["Orders"])
async def list_orders(request: Request, status: Optional[str] = Query(None)) -> dict[str, Any]:
    orders = await _data(request).orders.list_orders(status)
    return {"success": True, "orders": orders, "total": len(orders)}


@router.post("/api/orders", tags=["Orders"])
async def create_order(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    result = await _data(request).orders.add_order(payload)
    return {**result.to_dict(), "message": "Order added successfully"}


@router.delete("/api/orders", tags=["Orders"])
async def clear_orders(request: Request) -> dict[str, Any]:
    result = await _data(request).orders.clear()
    return {**result.to_dict(), "message": "All orders cleared"}


@router.get("/api/orders/{order_id}", tags=["Orders"])
async def get_order(order_id: str, request: Request) -> dict[str, Any]:
    return {"success": True, "order": await _data(request).orders.get_order(order_id)}


@router.delete("/api/orders/{order_id}", tags=["Orders"])
async def delete_order(order_id: str, request: Request) -> dict[str, Any]:
    result = await _data(request).orders.delete_order(order_id)
    return {**result.to_dict(), "message": f"Order {order_id} deleted"}


@router.put("/api/orders/{order_id}/status", tags=["Orders"])
async def update_order_status(
    order_id: str, request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    result = await _data(request).orders.update_status(order_id, _require(payload.get("status"), "status"))
    return {**result.to_dict(), "message": "Order updated successfully"}


@router.post("/api/orders/{order_id}/cancel", tags=["Orders"])
async def cancel_order(
    order_id: str, request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    result = await _data(request).orders.cancel_order(
        order_id,
        payload.get("cancellationReason"),
        payload.get("cancelledBy"),
    )
    return {**result.to_dict(), "message": "Order cancelled successfully"}


# =============================================================================
# ANALYTICS & STATISTICS
# =============================================================================

@router.get("/api/analytics", tags=["Analytics"])
async def get_analytics(request: Request) -> dict[str, Any]:
    return await _data(request).get_analytics()


@router.post("/api/analytics/recompute", tags=["Analytics"])
async def recompute_analytics(request: Request) -> dict[str, Any]:
    return (await _data(request).recompute_analytics()).to_dict()


@router.get("/api/order-statistics", tags=["Analytics"])
async def order_statistics(request: Request, period: str = Query("all")) -> dict[str, Any]:
    orders = await _data(request).orders.list_orders()
    return {
        "success": True,
        "period": period,
        "statistics": compute_order_statistics(orders, period),
    }


# =============================================================================
# INVENTORY
# =============================================================================

@router.get("/api/inventory", tags=["Inventory"])
async def get_inventory(request: Request) -> dict[str, Any]:
    return await _data(request).inventory.summary()


@router.post("/api/inventory", tags=["Inventory"])
async def add_inventory_item(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    item = await _data(request).inventory.add_item(payload)
    return {"success": True, "item": item}


@router.put("/api/inventory", tags=["Inventory"])
async def update_inventory_item(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    item_id = _require(payload.get("id"), "id")
    changes = {k: v for k, v in payload.items() if k != "id"}
    item = await _data(request).inventory.update_item(item_id, changes)
    return {"success": True, "item": item}


@router.delete("/api/inventory", tags=["Inventory"])
async def delete_inventory_item(request: Request, id: Optional[str] = Query(None)) -> dict[str, Any]:
    await _data(request).inventory.delete_item(_require(id, "id"))
    return {"success": True, "message": "Item deleted successfully"}


@router.put("/api/inventory/stock", tags=["Inventory"])
async def adjust_stock(request: Request, payload: list[dict[str, Any]] = Body(...)) -> dict[str, Any]:
    return (await _data(request).inventory.bulk_adjust_stock(payload)).to_dict()


# =============================================================================
# COMBOS, OFFERS, TODAY'S SPECIAL
# =============================================================================

@router.get("/api/combos", tags=["Promotions"])
async def list_combos(request: Request, active: bool = Query(False)) -> dict[str, Any]:
    return {"success": True, "combos": await _data(request).combos.list_combos(active_only=active)}


@router.post("/api/combos", tags=["Promotions"])
async def add_combo(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    return {"success": True, "combo": await _data(request).combos.add_combo(payload)}


@router.put("/api/combos", tags=["Promotions"])
async def update_combo(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    combo_id = _require(payload.get("id"), "id")
    combo = await _data(request).combos.update_combo(
        combo_id, {k: v for k, v in payload.items() if k != "id"}
    )
    return {"success": True, "combo": combo}


@router.delete("/api/combos", tags=["Promotions"])
async def delete_combo(request: Request, id: Optional[str] = Query(None)) -> dict[str, Any]:
    await _data(request).combos.delete_combo(_require(id, "id"))
    return {"success": True, "message": "Combo deleted successfully"}


@router.get("/api/offers", tags=["Promotions"])
async def list_offers(request: Request, active: bool = Query(False)) -> dict[str, Any]:
    offers = _data(request).offers
    return {
        "success": True,
        "offers": await offers.active_offers() if active else await offers.list_offers(),
    }


@router.post("/api/offers", tags=["Promotions"])
async def add_offer(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    return {"success": True, "offer": await _data(request).offers.add_offer(payload)}


@router.put("/api/offers", tags=["Promotions"])
async def update_offer(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    offer_id = _require(payload.get("id"), "id")
    offer = await _data(request).offers.update_offer(
        offer_id, {k: v for k, v in payload.items() if k != "id"}
    )
    return {"success": True, "offer": offer}


@router.delete("/api/offers", tags=["Promotions"])
async def delete_offer(request: Request, id: Optional[str] = Query(None)) -> dict[str, Any]:
    await _data(request).offers.delete_offer(_require(id, "id"))
    return {"success": True, "message": "Offer deleted successfully"}


@router.get("/api/todays-special", tags=["Promotions"])
async def list_specials(request: Request) -> dict[str, Any]:
    return {"items": await _data(request).specials.list_specials()}


@router.post("/api/todays-special", tags=["Promotions"])
async def add_special(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    return {"success": True, "item": await _data(request).specials.add_special(payload)}


@router.put("/api/todays-special", tags=["Promotions"])
async def update_special(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    special_id = _require(payload.get("id"), "id")
    item = await _data(request).specials.update_special(
        special_id, {k: v for k, v in payload.items() if k != "id"}
    )
    return {"success": True, "item": item}


@router.delete("/api/todays-special", tags=["Promotions"])
async def delete_special(request: Request, id: Optional[str] = Query(None)) -> dict[str, Any]:
    await _data(request).specials.delete_special(_require(id, "id"))
    return {"success": True, "message": "Item deleted successfully"}


# =============================================================================
# TASKS & CREDENTIALS
# =============================================================================

@router.get("/api/tasks", tags=["Staff"])
async def list_tasks(request: Request) -> dict[str, Any]:
    return {"success": True, "tasks": await _data(request).tasks.list_tasks()}


@router.post("/api/tasks", tags=["Staff"])
async def create_task(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    return {"success": True, "task": await _data(request).tasks.create_task(payload)}


@router.put("/api/tasks/{task_id}", tags=["Staff"])
async def update_task(task_id: str, request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    return {"success": True, "task": await _data(request).tasks.update_task(task_id, payload)}


@router.put("/api/tasks/{task_id}/status", tags=["Staff"])
async def update_task_status(
    task_id: str, request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    task = await _data(request).tasks.update_status(task_id, _require(payload.get("status"), "status"))
    return {"success": True, "task": task}


@router.delete("/api/tasks/{task_id}", tags=["Staff"])
async def delete_task(task_id: str, request: Request) -> dict[str, Any]:
    await _data(request).tasks.delete_task(task_id)
    return {"success": True, "message": "Task deleted successfully"}


@router.get("/api/credentials", tags=["Staff"])
async def load_credentials(request: Request) -> dict[str, Any]:
    return await _data(request).staff.load_credentials()


@router.post("/api/credentials", tags=["Staff"])
async def save_credentials(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    saved = await _data(request).staff.save_credentials(payload.get("users"))
    return {"success": True, "message": "Credentials saved successfully", "saved": saved}


# =============================================================================
# MIGRATION
# =============================================================================

@router.get("/api/migration/report", tags=["Migration"])
async def migration_report(request: Request) -> dict[str, Any]:
    report = await _migrator(request).generate_report()
    return report.model_dump(by_alias=True, mode="json")


@router.post("/api/migration/run", tags=["Migration"])
async def run_migration(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    stats = await _migrator(request).migrate_all(payload)
    return {"success": True, **stats.model_dump(by_alias=True)}


# =============================================================================
# OPERATIONS
# =============================================================================

@router.get("/api/cache", tags=["Operations"])
async def cache_info(request: Request) -> dict[str, Any]:
    return _data(request).cache_info()


@router.delete("/api/cache", tags=["Operations"])
async def clear_cache(request: Request) -> dict[str, Any]:
    _data(request).clear_cache()
    return {"success": True, "message": "Cache cleared"}


@router.post("/api/export/{kind}", tags=["Operations"])
async def export_spreadsheet(
    kind: str,
    request: Request,
    background: bool = Query(False),
) -> dict[str, Any]:
    if kind not in ("orders", "inventory"):
        raise ValidationError(f"Unknown export '{kind}'", detail={"allowed": ["orders", "inventory"]})

    if background:
        from restohub.tasks import export_inventory_task, export_orders_task

        task = (export_orders_task if kind == "orders" else export_inventory_task).delay()
        return {"success": True, "message": f"{kind} export queued", "task_id": task.id}

    data = _data(request)
    exporter: SpreadsheetExporter = request.app.state.exporter
    if kind == "orders":
        return exporter.export_orders(await data.orders.list_orders())
    return exporter.export_inventory(await data.inventory.list_items())


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def data_access_exception_handler(request: Request, exc: DataAccessError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "validation", "detail": str(exc.errors())},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

def create_app(
    data: Optional[DataService] = None,
    profiles: Optional[BaseProfileStore] = None,
    exporter: Optional[SpreadsheetExporter] = None,
) -> FastAPI:
    """
    Build the application.

    Services not passed in are built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Analytics recompute: {settings.analytics_recompute_mode.value}")
        logger.info("=" * 60)

        scheduler = None
        if settings.analytics_recompute_mode == RecomputeMode.DEFERRED:
            from restohub.tasks import schedule_analytics_recompute
            scheduler = schedule_analytics_recompute

        app.state.data = data or build_data_service(settings, TTLCache(), analytics_scheduler=scheduler)
        app.state.profiles = profiles or get_profile_store()
        app.state.exporter = exporter or SpreadsheetExporter(
            settings.export_directory, settings.file_lock_timeout
        )

        remote = app.state.data.selector.remote
        logger.info(f"✅ Document Store: {remote.provider_name if remote else 'disabled'}")
        logger.info(f"✅ Profile Store: {app.state.profiles.provider_name}")

        if settings.use_real_services:
            missing = settings.validate_production_config()
            if missing:
                logger.warning(f"⚠️ Missing production config: {missing}")

        logger.info("✅ Application ready!")

        yield

        logger.info("Shutting down...")
        app.state.data.clear_cache()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="Restaurant ordering backend with remote/local storage fallback.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.add_exception_handler(DataAccessError, data_access_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    return app


app = create_app()
