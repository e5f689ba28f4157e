"""HTTP connector for the notification email service."""

from __future__ import annotations

import httpx
import structlog

from apihub_applications.domain.interfaces.email_connector import EmailConnector, EmailError
from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestRequest
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.team import Team

logger = structlog.get_logger(__name__)

OWNERSHIP_CHANGED_TO_OLD_TEAM = "ownershipChangedToOldTeam"
OWNERSHIP_CHANGED_TO_NEW_TEAM = "ownershipChangedToNewTeam"
ACCESS_REQUEST_SUBMITTED = "accessRequestSubmitted"
ACCESS_APPROVED = "accessApproved"
ACCESS_REJECTED = "accessRejected"


class HttpEmailConnector(EmailConnector):
    """Sends templated emails by posting `{to, templateId, parameters}` to `/hmrc/email`.

    Template ids are configured per notification name. A notification with
    no configured template, or a non-2xx answer, raises EmailError.
    """

    TIMEOUT = 10.0
    """Request timeout in seconds."""

    def __init__(
        self,
        base_url: str,
        templates: dict[str, str],
        timeout: float = TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.templates = dict(templates)
        self.timeout = timeout
        self._client = client

    async def _send(self, template: str, to: list[str], parameters: dict[str, str]) -> None:
        if not to:
            return
        template_id = self.templates.get(template)
        if not template_id:
            raise EmailError(f"No email template configured for {template}")

        payload = {"to": to, "templateId": template_id, "parameters": parameters}
        url = f"{self.base_url}/hmrc/email"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailError(
                f"Email service returned {e.response.status_code} for template {template}"
            ) from e
        except httpx.HTTPError as e:
            raise EmailError(f"Email service call failed for template {template}: {e}") from e

        logger.info("email_sent", template=template, recipients=len(to))

    async def send_ownership_changed_to_old_team(
        self, old_team: Team, new_team: Team, application: Application
    ) -> None:
        await self._send(
            OWNERSHIP_CHANGED_TO_OLD_TEAM,
            old_team.member_emails,
            {"applicationname": application.name, "teamname": new_team.name},
        )

    async def send_ownership_changed_to_new_team(
        self, new_team: Team, application: Application
    ) -> None:
        await self._send(
            OWNERSHIP_CHANGED_TO_NEW_TEAM,
            new_team.member_emails,
            {"applicationname": application.name, "teamname": new_team.name},
        )

    async def send_access_request_submitted(
        self, application: Application, request: AccessRequestRequest
    ) -> None:
        await self._send(
            ACCESS_REQUEST_SUBMITTED,
            [request.requested_by],
            {
                "applicationname": application.name,
                "apispecificationname": ", ".join(api.api_name for api in request.apis),
            },
        )

    async def send_access_approved(
        self, application: Application, access_request: AccessRequest, recipients: list[str]
    ) -> None:
        await self._send(
            ACCESS_APPROVED,
            recipients,
            {"applicationname": application.name, "apispecificationname": access_request.api_name},
        )

    async def send_access_rejected(
        self, application: Application, access_request: AccessRequest, recipients: list[str]
    ) -> None:
        await self._send(
            ACCESS_REJECTED,
            recipients,
            {"applicationname": application.name, "apispecificationname": access_request.api_name},
        )
