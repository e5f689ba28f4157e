"""Integration tests for HttpEmailConnector over a mocked HTTP transport."""

import json

import httpx
import pytest

from apihub_applications.domain.interfaces.email_connector import EmailError
from apihub_applications.infrastructure.email.email_connector import HttpEmailConnector
from fixtures.test_data import make_access_request, make_application, make_team

TEMPLATES = {
    "ownershipChangedToOldTeam": "tpl-old",
    "ownershipChangedToNewTeam": "tpl-new",
    "accessRequestSubmitted": "tpl-submitted",
    "accessApproved": "tpl-approved",
    "accessRejected": "tpl-rejected",
}


def connector_for(handler, templates=TEMPLATES) -> tuple[HttpEmailConnector, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return HttpEmailConnector("https://email.example.com/", templates, client=client), requests


class TestHttpEmailConnector:
    """Tests for the email payloads."""

    @pytest.mark.asyncio
    async def test_access_approved_payload(self) -> None:
        connector, requests = connector_for(lambda request: httpx.Response(201))
        application = make_application(name="My App")

        await connector.send_access_approved(
            application, make_access_request("app-1"), ["a@example.com", "b@example.com"]
        )

        assert str(requests[0].url) == "https://email.example.com/hmrc/email"
        assert json.loads(requests[0].content) == {
            "to": ["a@example.com", "b@example.com"],
            "templateId": "tpl-approved",
            "parameters": {"applicationname": "My App", "apispecificationname": "API api-1"},
        }

    @pytest.mark.asyncio
    async def test_ownership_change_goes_to_team_members(self) -> None:
        connector, requests = connector_for(lambda request: httpx.Response(201))
        old_team = make_team("Old", "old@example.com")
        new_team = make_team("New", "new@example.com")

        await connector.send_ownership_changed_to_old_team(old_team, new_team, make_application())
        await connector.send_ownership_changed_to_new_team(new_team, make_application())

        payloads = [json.loads(request.content) for request in requests]
        assert [(p["templateId"], p["to"]) for p in payloads] == [
            ("tpl-old", ["old@example.com"]),
            ("tpl-new", ["new@example.com"]),
        ]
        assert payloads[0]["parameters"]["teamname"] == "New"

    @pytest.mark.asyncio
    async def test_no_recipients_sends_nothing(self) -> None:
        connector, requests = connector_for(lambda request: httpx.Response(201))

        await connector.send_access_rejected(make_application(), make_access_request("app-1"), [])

        assert requests == []

    @pytest.mark.asyncio
    async def test_missing_template_raises(self) -> None:
        connector, requests = connector_for(lambda request: httpx.Response(201), templates={})

        with pytest.raises(EmailError):
            await connector.send_access_approved(
                make_application(), make_access_request("app-1"), ["a@example.com"]
            )

        assert requests == []

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        connector, _ = connector_for(lambda request: httpx.Response(500))

        with pytest.raises(EmailError):
            await connector.send_access_approved(
                make_application(), make_access_request("app-1"), ["a@example.com"]
            )

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        connector, _ = connector_for(refuse)

        with pytest.raises(EmailError):
            await connector.send_access_approved(
                make_application(), make_access_request("app-1"), ["a@example.com"]
            )
