"""Tests for EventsService."""

from unittest.mock import AsyncMock

import pytest

from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.components.events_service import EventsService
from apihub_applications.domain.interfaces.state_store import StateStoreError
from apihub_applications.domain.models.event import EntityType
from apihub_applications.infrastructure.state_store.memory_store import InMemoryStateStore
from fixtures.test_data import FIXED_NOW, make_api, make_application


def api_added_event(application_id: str = "app-1", user: str = "user@example.com"):
    application = make_application().model_copy(update={"id": application_id})
    return event_derivation.api_added(application, make_api("api-1"), user, FIXED_NOW)


class TestEventsService:
    """Tests for logging and querying events."""

    @pytest.mark.asyncio
    async def test_log_assigns_id_and_queries_find_it(self) -> None:
        store = InMemoryStateStore()
        service = EventsService(store)

        saved = await service.log(api_added_event())

        assert saved is not None and saved.id is not None
        assert await service.find_by_id(saved.id) == saved
        assert await service.find_by_entity(EntityType.Application, "app-1") == [saved]
        assert await service.find_by_user("user@example.com") == [saved]
        assert await service.find_by_entity(EntityType.Team, "app-1") == []

    @pytest.mark.asyncio
    async def test_disabled_events_record_nothing(self) -> None:
        store = InMemoryStateStore()
        service = EventsService(store, events_enabled=False)

        assert await service.log(api_added_event()) is None
        assert await store.find_events_by_entity(EntityType.Application, "app-1") == []

    @pytest.mark.asyncio
    async def test_store_failure_is_swallowed(self) -> None:
        store = InMemoryStateStore()
        store.insert_event = AsyncMock(side_effect=StateStoreError("down"))  # type: ignore[method-assign]
        service = EventsService(store)

        assert await service.log(api_added_event()) is None

    @pytest.mark.asyncio
    async def test_log_all_keeps_order(self) -> None:
        store = InMemoryStateStore()
        service = EventsService(store)

        await service.log_all(
            [api_added_event(user="first@example.com"), api_added_event(user="second@example.com")]
        )

        events = await service.find_by_entity(EntityType.Application, "app-1")
        assert [event.user for event in events] == ["first@example.com", "second@example.com"]
