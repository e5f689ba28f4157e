"""Integration tests for MongoStateStore against a running MongoDB."""

import os
from contextlib import suppress

import pytest
from cryptography.fernet import Fernet
from motor.motor_asyncio import AsyncIOMotorClient

from apihub_applications.domain.interfaces.state_store import StateStoreError
from apihub_applications.domain.models.access_request import AccessRequestStatus
from apihub_applications.domain.models.errors import (
    ApplicationNotUpdatedError,
    TeamNameNotUniqueError,
)
from apihub_applications.domain.components import event_derivation
from apihub_applications.domain.models.event import EntityType
from apihub_applications.infrastructure.state_store.mongo_store import MongoStateStore
from apihub_applications.infrastructure.utils.encryption import EncryptionService
from fixtures.test_data import (
    FIXED_NOW,
    make_access_request,
    make_api,
    make_application,
    make_team,
)

DATABASE_NAME = "test_apihub_applications"


@pytest.fixture
def mongodb_url() -> str:
    """Get MongoDB connection URL from environment or use default."""
    return os.getenv("APIHUB_MONGODB_URL", "mongodb://localhost:27017")


@pytest.fixture
async def mongo_store(mongodb_url: str):
    """MongoStateStore over a throwaway database."""
    try:
        client = AsyncIOMotorClient(mongodb_url, serverSelectionTimeoutMS=2000)
        await client.admin.command("ping")
        client.close()
    except Exception:
        pytest.skip("MongoDB is not available. Start MongoDB or set APIHUB_MONGODB_URL")

    store = MongoStateStore(
        connection_url=mongodb_url,
        database_name=DATABASE_NAME,
        crypto=EncryptionService(Fernet.generate_key().decode()),
        max_pool_size=10,
        min_pool_size=1,
        server_selection_timeout_ms=3000,
    )
    await store.initialize()
    yield store

    with suppress(Exception):
        await store._client.drop_database(DATABASE_NAME)
    await store.close()


def test_missing_connection_url_raises_error(monkeypatch) -> None:
    monkeypatch.delenv("APIHUB_MONGODB_URL", raising=False)

    with pytest.raises(StateStoreError, match="MongoDB connection URL not provided"):
        MongoStateStore()


class TestMongoApplications:
    """Application persistence."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, mongo_store: MongoStateStore) -> None:
        application = make_application(apis=[make_api("api-1", ("GET", "/a", ["read"]))])

        saved = await mongo_store.insert_application(application)
        loaded = await mongo_store.get_application(saved.safe_id)

        assert loaded == saved

    @pytest.mark.asyncio
    async def test_personal_data_is_encrypted_at_rest(self, mongo_store: MongoStateStore) -> None:
        saved = await mongo_store.insert_application(make_application())

        raw = await mongo_store._client[DATABASE_NAME]["applications"].find_one()

        assert str(raw["_id"]) == saved.id
        assert raw["created_by"] != "creator@example.com"
        assert "creator@example.com" not in raw["team_members"]

    @pytest.mark.asyncio
    async def test_secrets_are_never_stored(self, mongo_store: MongoStateStore) -> None:
        application = make_application()
        credential = application.credentials[0].with_secret("super-secret-value")
        application = application.model_copy(
            update={"credentials": [credential, *application.credentials[1:]]}
        )

        saved = await mongo_store.insert_application(application)
        loaded = await mongo_store.get_application(saved.safe_id)

        assert loaded.credentials[0].client_secret is None
        assert loaded.credentials[0].secret_fragment == "alue"

    @pytest.mark.asyncio
    async def test_soft_delete_and_listing(self, mongo_store: MongoStateStore) -> None:
        kept = await mongo_store.insert_application(
            make_application(name="Kept").add_team_member("member@example.com")
        )
        gone = await mongo_store.insert_application(make_application(name="Gone"))
        await mongo_store.update_application(gone.delete(FIXED_NOW, "admin@example.com"))

        assert await mongo_store.get_application(gone.safe_id) is None
        deleted = await mongo_store.get_application(gone.safe_id, include_deleted=True)
        assert deleted.deleted.deleted_by == "admin@example.com"
        assert [a.id for a in await mongo_store.list_applications()] == [kept.id]
        assert [a.id for a in await mongo_store.list_applications("Member@Example.com")] == [
            kept.id
        ]
        assert len(await mongo_store.list_applications(include_deleted=True)) == 2

    @pytest.mark.asyncio
    async def test_update_unknown_application_raises(self, mongo_store: MongoStateStore) -> None:
        application = make_application().model_copy(update={"id": "64b7f0c2a1d3e4f5a6b7c8d9"})

        with pytest.raises(ApplicationNotUpdatedError):
            await mongo_store.update_application(application)

    @pytest.mark.asyncio
    async def test_invalid_id_is_not_found(self, mongo_store: MongoStateStore) -> None:
        assert await mongo_store.get_application("not-an-id") is None
        assert await mongo_store.get_access_request("not-an-id") is None
        assert await mongo_store.get_team("not-an-id") is None


class TestMongoAccessRequests:
    """Access request persistence."""

    @pytest.mark.asyncio
    async def test_find_and_update(self, mongo_store: MongoStateStore) -> None:
        saved = await mongo_store.insert_access_requests(
            [make_access_request("app-1"), make_access_request("app-2")]
        )
        rejected = saved[0].reject(FIXED_NOW, "approver@example.com", "Not needed")

        await mongo_store.update_access_request(rejected)

        assert await mongo_store.get_access_request(saved[0].safe_id) == rejected
        pending = await mongo_store.find_access_requests(status=AccessRequestStatus.Pending)
        assert [r.id for r in pending] == [saved[1].id]
        assert [r.id for r in await mongo_store.find_access_requests("app-1")] == [saved[0].id]


class TestMongoTeams:
    """Team persistence."""

    @pytest.mark.asyncio
    async def test_team_names_are_unique_ignoring_case(self, mongo_store: MongoStateStore) -> None:
        team = await mongo_store.insert_team(make_team("Team Alpha", "a@example.com"))

        with pytest.raises(TeamNameNotUniqueError):
            await mongo_store.insert_team(make_team("TEAM ALPHA"))

        assert await mongo_store.find_team_by_name("team alpha") == team
        assert [t.id for t in await mongo_store.list_teams("A@example.com")] == [team.id]


class TestMongoEvents:
    """Event persistence."""

    @pytest.mark.asyncio
    async def test_events_by_entity_and_user(self, mongo_store: MongoStateStore) -> None:
        application = make_application().model_copy(update={"id": "64b7f0c2a1d3e4f5a6b7c8d9"})
        event = event_derivation.api_added(
            application, make_api("api-1"), "user@example.com", FIXED_NOW
        )

        saved = await mongo_store.insert_event(event)

        assert await mongo_store.get_event(saved.id) == saved
        assert await mongo_store.find_events_by_entity(
            EntityType.Application, application.safe_id
        ) == [saved]
        assert await mongo_store.find_events_by_user("USER@example.com") == [saved]
