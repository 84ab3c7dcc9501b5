"""
Celery Tasks
Background jobs: analytics recompute, spreadsheet exports and order migration.

Each task builds its own DataService from settings; the worker process does
not share the API process's cache.
"""

import asyncio
import logging
import time
from datetime import datetime

from restohub.celery_worker import celery_app
from restohub.core.cache import TTLCache
from restohub.core.config import get_settings
from restohub.services.data import DataService, build_data_service
from restohub.services.exporter import SpreadsheetExporter
from restohub.services.migration import OrderMigrator
from restohub.services.profiles import get_profile_store

logger = logging.getLogger(__name__)


def get_task_data_service() -> DataService:
    return build_data_service(get_settings(), TTLCache())


def get_exporter() -> SpreadsheetExporter:
    settings = get_settings()
    return SpreadsheetExporter(settings.export_directory, settings.file_lock_timeout)


@celery_app.task(bind=True)
def recompute_analytics_task(self) -> dict:
    """Rebuild the analytics snapshot from the order log."""
    task_id = self.request.id
    start_time = time.time()

    result = asyncio.run(get_task_data_service().recompute_analytics())

    elapsed = round(time.time() - start_time, 3)
    if result.success:
        logger.info(f"✅ Task {task_id}: analytics recomputed in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: {result.warning}")

    return {**result.to_dict(), 'task_id': task_id, 'processing_time_seconds': elapsed}


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_orders_task(self) -> dict:
    """Export the whole order log to orders.xlsx."""
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: exporting orders")

    orders = asyncio.run(get_task_data_service().orders.list_orders())
    result = get_exporter().export_orders(orders)
    result['task_id'] = task_id
    return result


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_inventory_task(self) -> dict:
    """Export the inventory to inventory.xlsx."""
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: exporting inventory")

    items = asyncio.run(get_task_data_service().inventory.list_items())
    result = get_exporter().export_inventory(items)
    result['task_id'] = task_id
    return result


@celery_app.task(bind=True)
def run_migration_task(self) -> dict:
    """
    Generate a fresh migration report and apply it straight away.

    Returns the report counts and the migration stats.
    """
    task_id = self.request.id
    settings = get_settings()
    migrator = OrderMigrator(
        get_task_data_service(),
        get_profile_store(),
        min_confidence=settings.migration_min_confidence,
        max_report_age_seconds=settings.migration_report_max_age_seconds,
    )

    async def run():
        report = await migrator.generate_report()
        stats = await migrator.migrate_all(report)
        return report, stats

    report, stats = asyncio.run(run())
    logger.info(f"✅ Task {task_id}: migration finished ({stats.migrated} migrated)")
    return {
        'task_id': task_id,
        'totalOrders': report.total_orders,
        'notMigratable': len(report.not_migratable),
        'stats': stats.model_dump(),
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


def schedule_analytics_recompute() -> None:
    """Analytics scheduler used by the API when recompute mode is deferred."""
    recompute_analytics_task.delay()
