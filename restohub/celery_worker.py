"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Tasks are split across three queues so a long export or migration never
delays the analytics refresh that follows an order:

    analytics   recompute_analytics_task
    bulk        export_*_task, run_migration_task
    restohub    everything else (health checks)

Run:
    celery -A restohub.celery_worker worker -Q analytics,bulk,restohub --loglevel=info
"""

from celery import Celery

from restohub.core.config import get_settings

settings = get_settings()

ANALYTICS_QUEUE = 'analytics'
BULK_QUEUE = 'bulk'
DEFAULT_QUEUE = 'restohub'

celery_app = Celery(
    'restohub_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['restohub.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    task_default_queue=DEFAULT_QUEUE,
    task_routes={
        'restohub.tasks.recompute_analytics_task': {'queue': ANALYTICS_QUEUE},
        'restohub.tasks.export_orders_task': {'queue': BULK_QUEUE},
        'restohub.tasks.export_inventory_task': {'queue': BULK_QUEUE},
        'restohub.tasks.run_migration_task': {'queue': BULK_QUEUE},
    },

    # A recompute reads the whole order log; exports also build a DataFrame
    task_annotations={
        'restohub.tasks.recompute_analytics_task': {'soft_time_limit': 60, 'time_limit': 90},
        'restohub.tasks.export_orders_task': {'soft_time_limit': 120, 'time_limit': 180},
        'restohub.tasks.export_inventory_task': {'soft_time_limit': 120, 'time_limit': 180},
        'restohub.tasks.run_migration_task': {'soft_time_limit': 600, 'time_limit': 660},
    },

    worker_prefetch_multiplier=1,
    worker_concurrency=settings.celery_worker_concurrency,
    # pandas keeps freed DataFrame memory; recycle export workers
    worker_max_tasks_per_child=50,

    result_expires=settings.celery_result_expires,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
