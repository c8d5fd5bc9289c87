"""
Unit Tests for SubjectRegistry and ReactiveCacheService
"""

from unittest.mock import AsyncMock

import pytest

from reactive_cache.caching import service as service_module
from reactive_cache.caching.registry import SubjectRegistry
from reactive_cache.caching.service import (
    ReactiveCacheService,
    close_reactive_cache,
    get_reactive_cache_service,
)
from reactive_cache.core.exceptions import ConfigurationError, SubjectTypeNotFoundError
from tests.test_fixtures import Project


@pytest.mark.unit
class TestSubjectRegistry:
    """Test subject type lookup."""

    def test_register_and_get(self, controller):
        """Test that a registered controller is found by name."""
        registry = SubjectRegistry()
        registry.register(controller)

        assert registry.get("project") is controller
        assert "project" in registry
        assert registry.names() == ["project"]
        assert len(registry) == 1
        assert list(registry) == [controller]

    def test_duplicate_name_rejected(self, controller):
        """Test that a name can only be registered once."""
        registry = SubjectRegistry()
        registry.register(controller)

        with pytest.raises(ConfigurationError):
            registry.register(controller)

    def test_unknown_name(self):
        """Test that unknown names raise SubjectTypeNotFoundError."""
        with pytest.raises(SubjectTypeNotFoundError) as exc_info:
            SubjectRegistry().get("missing")

        assert exc_info.value.details["registered"] == []


@pytest.mark.unit
class TestReactiveCacheService:
    """Test wiring of the Redis-backed collaborators."""

    @pytest.fixture
    def service(self, fake_redis):
        return ReactiveCacheService(redis_client=fake_redis)

    @pytest.mark.asyncio
    async def test_initialize_connects_and_creates_group(self, service, fake_redis):
        """Test that initialize connects Redis and creates the consumer group."""
        await service.initialize()

        assert service.is_initialized()
        assert fake_redis.is_connected()
        assert ("queue:reactive_caching", "reactive_caching_workers") in fake_redis.groups

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, service, fake_redis):
        """Test that a second initialize is a no-op."""
        await service.initialize()
        await service.initialize()

        assert len(fake_redis.groups) == 1

    def test_register_builds_controller(self, service, project_type):
        """Test that register returns a controller reachable by name."""
        controller = service.register(project_type)

        assert service.controller("project") is controller
        assert controller.subject_type is project_type

    @pytest.mark.asyncio
    async def test_end_to_end_over_fake_redis(self, service, project_type, fake_redis):
        """Test a read, a compute cycle, and a warm read over the Redis adapters."""
        await service.initialize()
        projects = service.register(project_type)
        project = Project(1)

        assert await projects.read_with_trigger(project, lambda v: v) is None
        assert await fake_redis.xlen("queue:reactive_caching") == 1

        await projects.compute_cycle(project)

        assert await fake_redis.get("reactive_cache:project:1:stats") == '"V1"'
        assert await fake_redis.zcard("queue:reactive_caching:delayed") == 1
        assert await projects.read_with_trigger(project, lambda v: v) == "V1"

    @pytest.mark.asyncio
    async def test_health_check_includes_subject_types(self, service, project_type):
        """Test that health includes registered subject types."""
        service.register(project_type)

        health = await service.health_check()

        assert health["status"] == "healthy"
        assert health["subject_types"] == ["project"]

    @pytest.mark.asyncio
    async def test_shutdown_disconnects(self, service, fake_redis):
        """Test that shutdown disconnects Redis."""
        await service.initialize()
        await service.shutdown()

        assert not fake_redis.is_connected()
        assert not service.is_initialized()


@pytest.mark.unit
class TestGlobalService:
    """Test the global service singleton."""

    @pytest.mark.asyncio
    async def test_singleton_lifecycle(self, monkeypatch):
        """Test that the global service is reused until closed."""
        monkeypatch.setattr(service_module, "_service", None)

        first = get_reactive_cache_service()
        assert get_reactive_cache_service() is first

        first.shutdown = AsyncMock()
        await close_reactive_cache()

        first.shutdown.assert_awaited_once()
        assert service_module._service is None

    @pytest.mark.asyncio
    async def test_close_without_service_is_noop(self, monkeypatch):
        """Test that closing before creating does nothing."""
        monkeypatch.setattr(service_module, "_service", None)

        await close_reactive_cache()

        assert service_module._service is None
