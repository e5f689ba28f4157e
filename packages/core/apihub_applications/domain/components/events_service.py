"""EventsService component for the audit trail."""

import structlog

from apihub_applications.domain.interfaces.state_store import StateStore
from apihub_applications.domain.models.event import EntityType, Event

logger = structlog.get_logger(__name__)


class EventsService:
    """Appends audit events and answers audit-trail queries.

    Logging an event is best-effort: the change it records has already been
    persisted, so a failed insert is logged and swallowed rather than
    reported as a failure of that change.
    """

    def __init__(self, state_store: StateStore, events_enabled: bool = True) -> None:
        """Initialize EventsService.

        Args:
            state_store: StateStore implementation holding the event log.
            events_enabled: When False, `log` records nothing.
        """
        self._state_store = state_store
        self._events_enabled = events_enabled

    async def log(self, event: Event) -> Event | None:
        """Append an event to the audit trail.

        Args:
            event: Unsaved event.

        Returns:
            The stored event with its id, or None when events are disabled or
            the insert failed.
        """
        if not self._events_enabled:
            return None

        try:
            return await self._state_store.insert_event(event)
        except Exception as e:
            logger.warning(
                "event_log_failed",
                entity_type=event.entity_type.value,
                entity_id=event.entity_id,
                event_type=event.event_type.value,
                error=str(e),
            )
            return None

    async def log_all(self, events: list[Event]) -> None:
        for event in events:
            await self.log(event)

    async def find_by_id(self, event_id: str) -> Event | None:
        return await self._state_store.get_event(event_id)

    async def find_by_entity(self, entity_type: EntityType, entity_id: str) -> list[Event]:
        return await self._state_store.find_events_by_entity(entity_type, entity_id)

    async def find_by_user(self, user: str) -> list[Event]:
        return await self._state_store.find_events_by_user(user)
