"""Tests for the Celery background tasks, run eagerly with ``apply()``."""

import asyncio

import pytest

import restohub.tasks as tasks
from restohub.services.data import DataService

from tests.conftest import inventory_payload, order_payload


@pytest.fixture
def task_services(monkeypatch, data: DataService, exporter, profiles):
    monkeypatch.setattr(tasks, "get_task_data_service", lambda: data)
    monkeypatch.setattr(tasks, "get_exporter", lambda: exporter)
    monkeypatch.setattr(tasks, "get_profile_store", lambda: profiles)
    return data


class TestAnalyticsTask:

    def test_recompute(self, task_services: DataService, remote):
        asyncio.run(remote.set("orders", "o1", {"id": "o1", "total": 120, "items": []}))

        result = tasks.recompute_analytics_task.apply().get()

        assert result["success"] is True
        assert result["task_id"]
        assert asyncio.run(task_services.get_analytics())["fullRecord"]["totalOrders"] == 1

    def test_schedule_queues_task(self, monkeypatch):
        queued = []
        monkeypatch.setattr(tasks.recompute_analytics_task, "delay", lambda: queued.append(True))

        tasks.schedule_analytics_recompute()
        assert queued == [True]


class TestExportTasks:

    def test_export_orders(self, task_services: DataService, exporter):
        asyncio.run(task_services.orders.add_order(order_payload(id="o1")))

        result = tasks.export_orders_task.apply().get()

        assert result["success"] is True
        assert result["rows"] == 1
        assert exporter.read_sheet(exporter.orders_file)[0]["order_id"] == "o1"

    def test_export_inventory(self, task_services: DataService, exporter):
        asyncio.run(task_services.inventory.add_item(inventory_payload()))

        result = tasks.export_inventory_task.apply().get()

        assert result["rows"] == 1
        assert exporter.inventory_file.exists()


class TestMigrationTask:

    def test_run_migration(self, task_services: DataService, profiles):
        asyncio.run(task_services.orders.add_order(order_payload(id="o1", customerPhone="9876543210")))
        asyncio.run(task_services.orders.add_order(order_payload(id="o2", customerName="Walk-in Customer")))

        result = tasks.run_migration_task.apply().get()

        assert result["totalOrders"] == 2
        assert result["notMigratable"] == 1
        assert result["stats"]["migrated"] == 1
        assert asyncio.run(task_services.orders.get_order("o1"))["migratedTo"] == "cust_asha"


def test_health_check_task():
    result = tasks.health_check.apply().get()
    assert result["status"] == "healthy"


class TestWorkerConfig:
    """Routing and limits must name tasks that actually exist."""

    def test_routes_and_limits_match_registered_tasks(self):
        from restohub.celery_worker import ANALYTICS_QUEUE, BULK_QUEUE, celery_app

        routes = celery_app.conf.task_routes
        assert routes[tasks.recompute_analytics_task.name] == {"queue": ANALYTICS_QUEUE}
        assert routes[tasks.export_orders_task.name] == {"queue": BULK_QUEUE}
        assert routes[tasks.run_migration_task.name] == {"queue": BULK_QUEUE}
        for name in list(routes) + list(celery_app.conf.task_annotations):
            assert name in celery_app.tasks
