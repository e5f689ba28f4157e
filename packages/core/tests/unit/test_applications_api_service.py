"""Tests for ApplicationsApiService."""

import pytest

from apihub_applications.domain.models.access_request import AccessRequestStatus
from apihub_applications.domain.models.application import AddApiRequest, Endpoint
from apihub_applications.domain.models.errors import (
    ApiNotFoundError,
    ApplicationDeletedError,
    ApplicationNotFoundError,
    IdentityIssue,
    ScopesNotReconciledError,
    TeamNotFoundError,
)
from apihub_applications.domain.models.event import EntityType, EventType
from apihub_applications.domain.models.scope_fix import ScopeOperation
from fixtures.test_data import (
    FIXED_NOW,
    PRODUCTION_CLIENT_ID,
    TEST_CLIENT_ID,
    make_access_request,
    make_api,
    make_application,
    make_team,
)

USER = "user@example.com"


@pytest.fixture
async def application(state_store, identity):
    identity.grant("production", PRODUCTION_CLIENT_ID)
    identity.grant("test", TEST_CLIENT_ID)
    return await state_store.insert_application(make_application())


async def event_types(state_store, application_id: str) -> list[EventType]:
    events = await state_store.find_events_by_entity(EntityType.Application, application_id)
    return [event.event_type for event in events]


def add_api_request(api_id: str = "api-1") -> AddApiRequest:
    return AddApiRequest(
        id=api_id,
        title=f"API {api_id}",
        endpoints=[Endpoint(http_method="GET", path="/a", scopes=["read"])],
    )


class TestAddApi:
    """Tests for linking APIs."""

    @pytest.mark.asyncio
    async def test_add_api_links_api_and_grants_non_gated_scopes(
        self, api_service, state_store, identity, clock, application
    ) -> None:
        clock.advance(minutes=5)

        updated = await api_service.add_api(application.safe_id, add_api_request(), USER)

        assert updated.has_api("api-1")
        assert updated.last_updated == clock.now
        stored = await state_store.get_application(application.safe_id)
        assert stored.has_api("api-1")
        assert identity.scopes_for("test", TEST_CLIENT_ID) == {"read"}
        assert identity.scopes_for("production", PRODUCTION_CLIENT_ID) == set()
        assert await event_types(state_store, application.safe_id) == [EventType.ApiAdded]

    @pytest.mark.asyncio
    async def test_add_api_replaces_endpoints_of_linked_api(
        self, api_service, state_store, identity, application
    ) -> None:
        await api_service.add_api(application.safe_id, add_api_request(), USER)
        request = AddApiRequest(
            id="api-1",
            endpoints=[Endpoint(http_method="POST", path="/b", scopes=["write"])],
        )

        updated = await api_service.add_api(application.safe_id, request, USER)

        assert len(updated.apis) == 1
        assert identity.scopes_for("test", TEST_CLIENT_ID) == {"write"}

    @pytest.mark.asyncio
    async def test_add_api_to_unknown_application_raises(self, api_service) -> None:
        with pytest.raises(ApplicationNotFoundError):
            await api_service.add_api("64b7f0c2a1d3e4f5a6b7c8d9", add_api_request(), USER)

    @pytest.mark.asyncio
    async def test_add_api_to_deleted_application_raises(
        self, api_service, state_store, identity, application
    ) -> None:
        await state_store.update_application(application.delete(FIXED_NOW, USER))

        with pytest.raises(ApplicationDeletedError):
            await api_service.add_api(application.safe_id, add_api_request(), USER)

        assert identity.calls == []

    @pytest.mark.asyncio
    async def test_add_api_keeps_change_when_reconciliation_fails(
        self, api_service, state_store, identity, application
    ) -> None:
        identity.fail(ScopeOperation.ADD, "test", IdentityIssue.CallError)

        with pytest.raises(ScopesNotReconciledError) as exc_info:
            await api_service.add_api(application.safe_id, add_api_request(), USER)

        assert exc_info.value.http_status == 502
        assert exc_info.value.details["environments"] == [
            {"environmentId": "test", "issue": "call_error"}
        ]
        stored = await state_store.get_application(application.safe_id)
        assert stored.has_api("api-1")
        assert await event_types(state_store, application.safe_id) == [EventType.ApiAdded]

    @pytest.mark.asyncio
    async def test_reconciliation_timeout_maps_to_504(
        self, api_service, identity, application
    ) -> None:
        identity.fail(ScopeOperation.FETCH, "production", IdentityIssue.Timeout)

        with pytest.raises(ScopesNotReconciledError) as exc_info:
            await api_service.add_api(application.safe_id, add_api_request(), USER)

        assert exc_info.value.http_status == 504


class TestRemoveApi:
    """Tests for unlinking APIs."""

    @pytest.mark.asyncio
    async def test_remove_api_cancels_pending_requests_for_that_api(
        self, api_service, state_store, identity, application
    ) -> None:
        await api_service.add_api(application.safe_id, add_api_request("api-1"), USER)
        await api_service.add_api(application.safe_id, add_api_request("api-2"), USER)
        requests = await state_store.insert_access_requests(
            [
                make_access_request(application.safe_id, api_id="api-1"),
                make_access_request(application.safe_id, api_id="api-2"),
            ]
        )

        updated = await api_service.remove_api(application.safe_id, "api-1", USER)

        assert not updated.has_api("api-1")
        first = await state_store.get_access_request(requests[0].safe_id)
        second = await state_store.get_access_request(requests[1].safe_id)
        assert first.status == AccessRequestStatus.Cancelled
        assert first.cancelled.cancelled_by == USER
        assert second.status == AccessRequestStatus.Pending
        assert (await event_types(state_store, application.safe_id))[-2:] == [
            EventType.Canceled,
            EventType.ApiRemoved,
        ]

    @pytest.mark.asyncio
    async def test_remove_api_revokes_scopes_no_longer_required(
        self, api_service, identity, application
    ) -> None:
        await api_service.add_api(application.safe_id, add_api_request(), USER)

        await api_service.remove_api(application.safe_id, "api-1", USER)

        assert identity.scopes_for("test", TEST_CLIENT_ID) == set()

    @pytest.mark.asyncio
    async def test_remove_unlinked_api_raises(self, api_service, state_store, application) -> None:
        with pytest.raises(ApiNotFoundError):
            await api_service.remove_api(application.safe_id, "api-9", USER)

        assert await event_types(state_store, application.safe_id) == []

    @pytest.mark.asyncio
    async def test_remove_api_from_deleted_application_raises(
        self, api_service, state_store, application
    ) -> None:
        await state_store.update_application(
            application.add_api(make_api("api-1")).delete(FIXED_NOW, USER)
        )

        with pytest.raises(ApplicationDeletedError):
            await api_service.remove_api(application.safe_id, "api-1", USER)


class TestOwningTeam:
    """Tests for changing and removing the owning team."""

    @pytest.mark.asyncio
    async def test_change_owning_team_sets_team_and_notifies(
        self, api_service, state_store, email, application
    ) -> None:
        team = await state_store.insert_team(make_team("Team Alpha", "alpha@example.com"))

        updated = await api_service.change_owning_team(application.safe_id, team.safe_id, USER)

        assert updated.team_id == team.id
        assert updated.team_members == []
        assert email.templates() == ["ownershipChangedToNewTeam"]
        assert await event_types(state_store, application.safe_id) == [EventType.TeamChanged]

    @pytest.mark.asyncio
    async def test_change_owning_team_notifies_old_team(
        self, api_service, state_store, email, application
    ) -> None:
        old_team = await state_store.insert_team(make_team("Team Alpha", "alpha@example.com"))
        new_team = await state_store.insert_team(make_team("Team Beta", "beta@example.com"))
        await api_service.change_owning_team(application.safe_id, old_team.safe_id, USER)
        email.sent.clear()

        await api_service.change_owning_team(application.safe_id, new_team.safe_id, USER)

        assert email.sent == [
            ("ownershipChangedToOldTeam", ["alpha@example.com"], application.name),
            ("ownershipChangedToNewTeam", ["beta@example.com"], application.name),
        ]

    @pytest.mark.asyncio
    async def test_change_owning_team_to_same_team_sends_no_email(
        self, api_service, state_store, email, application
    ) -> None:
        team = await state_store.insert_team(make_team())
        await api_service.change_owning_team(application.safe_id, team.safe_id, USER)
        email.sent.clear()

        await api_service.change_owning_team(application.safe_id, team.safe_id, USER)

        assert email.sent == []

    @pytest.mark.asyncio
    async def test_change_owning_team_survives_email_failure(
        self, api_service, state_store, email, application
    ) -> None:
        email.failing = True
        team = await state_store.insert_team(make_team())

        updated = await api_service.change_owning_team(application.safe_id, team.safe_id, USER)

        assert updated.team_id == team.id

    @pytest.mark.asyncio
    async def test_change_owning_team_is_allowed_for_deleted_application(
        self, api_service, state_store, application
    ) -> None:
        await state_store.update_application(application.delete(FIXED_NOW, USER))
        team = await state_store.insert_team(make_team())

        updated = await api_service.change_owning_team(application.safe_id, team.safe_id, USER)

        assert updated.team_id == team.id
        assert updated.is_deleted

    @pytest.mark.asyncio
    async def test_change_owning_team_to_unknown_team_raises(
        self, api_service, application
    ) -> None:
        with pytest.raises(TeamNotFoundError):
            await api_service.change_owning_team(
                application.safe_id, "64b7f0c2a1d3e4f5a6b7c8d9", USER
            )

    @pytest.mark.asyncio
    async def test_remove_owning_team(self, api_service, state_store, application) -> None:
        team = await state_store.insert_team(make_team())
        await api_service.change_owning_team(application.safe_id, team.safe_id, USER)

        updated = await api_service.remove_owning_team(application.safe_id, USER)

        assert updated.team_id is None
        events = await state_store.find_events_by_entity(
            EntityType.Application, application.safe_id
        )
        assert events[-1].event_type == EventType.TeamChanged
        assert events[-1].parameters == {"oldTeamId": team.id, "oldTeamName": team.name}

    @pytest.mark.asyncio
    async def test_remove_owning_team_without_team_is_noop(
        self, api_service, state_store, application
    ) -> None:
        unchanged = await api_service.remove_owning_team(application.safe_id, USER)

        assert unchanged == application
        assert await event_types(state_store, application.safe_id) == []


class TestFixScopes:
    """Tests for the explicit fix-scopes operation."""

    @pytest.mark.asyncio
    async def test_fix_scopes_reconciles_and_records_event(
        self, api_service, state_store, identity, application
    ) -> None:
        await state_store.update_application(
            application.add_api(make_api("api-1", ("GET", "/a", ["read"])))
        )

        result = await api_service.fix_scopes(application.safe_id, USER)

        assert result.succeeded
        assert identity.scopes_for("test", TEST_CLIENT_ID) == {"read"}
        assert await event_types(state_store, application.safe_id) == [EventType.ScopesFixed]

    @pytest.mark.asyncio
    async def test_fix_scopes_failure_records_no_event(
        self, api_service, state_store, identity, application
    ) -> None:
        identity.fail(ScopeOperation.FETCH, "test", IdentityIssue.UnexpectedResponse)

        with pytest.raises(ScopesNotReconciledError) as exc_info:
            await api_service.fix_scopes(application.safe_id, USER)

        assert exc_info.value.http_status == 502
        assert await event_types(state_store, application.safe_id) == []

    @pytest.mark.asyncio
    async def test_fix_scopes_twice_makes_no_changes_second_time(
        self, api_service, state_store, identity, application
    ) -> None:
        await state_store.update_application(
            application.add_api(make_api("api-1", ("GET", "/a", ["read"])))
        )
        await api_service.fix_scopes(application.safe_id, USER)
        identity.calls.clear()

        result = await api_service.fix_scopes(application.safe_id, USER)

        assert result.calls_made == 0
        assert identity.mutating_calls == []
