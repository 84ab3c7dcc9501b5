"""Tests for settings parsing and service wiring."""

import pytest

from restohub.core.cache import TTLCache
from restohub.core.config import EnvironmentMode, RecomputeMode, Settings
from restohub.services.data import build_data_service
from restohub.services.store import InMemoryDocumentStore


class TestSettings:

    def test_remote_collections_list(self):
        settings = Settings(remote_collections=" menu, orders ,,availability ")
        assert settings.remote_collections_list == ["menu", "orders", "availability"]
        assert settings.prefers_remote("orders")
        assert not settings.prefers_remote("inventory")

    def test_remote_disabled(self):
        settings = Settings(remote_store_enabled=False)
        assert not settings.prefers_remote("orders")

    def test_env_mode_is_case_insensitive(self):
        settings = Settings(env_mode="PRODUCTION")
        assert settings.env_mode == EnvironmentMode.PRODUCTION
        assert settings.use_real_services

    def test_invalid_env_mode(self):
        with pytest.raises(ValueError):
            Settings(env_mode="qa")

    def test_production_needs_firebase_config(self):
        settings = Settings(env_mode="production", firebase_credentials_path=None, firebase_project_id=None)
        assert settings.validate_production_config() == ["FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID"]

        configured = Settings(env_mode="production", firebase_project_id="restohub-prod")
        assert configured.validate_production_config() == []

    def test_confidence_bounds(self):
        with pytest.raises(ValueError):
            Settings(migration_min_confidence=1.5)


class TestBuildDataService:

    @pytest.mark.asyncio
    async def test_wires_remote_for_listed_collections(self, tmp_path):
        settings = Settings(
            data_directory=str(tmp_path),
            remote_collections="orders",
            analytics_recompute_mode="deferred",
        )
        remote = InMemoryDocumentStore()
        data = build_data_service(settings, TTLCache(), remote=remote)

        assert data.recompute_mode == RecomputeMode.DEFERRED
        assert (await data.read_collection("orders")).backend == "remote"
        assert (await data.read_collection("menu")).backend == "local"

    @pytest.mark.asyncio
    async def test_remote_disabled_is_local_only(self, tmp_path):
        settings = Settings(data_directory=str(tmp_path), remote_store_enabled=False)
        data = build_data_service(settings, TTLCache())

        assert data.selector.remote is None
        assert (await data.read_collection("orders")).backend == "local"
