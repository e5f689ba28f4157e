"""HTTP connector for the identity-management system (IDMS)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.models.application import Credential
from apihub_applications.domain.models.environment import Environment
from apihub_applications.domain.models.errors import IdentityError, IdentityIssue

logger = structlog.get_logger(__name__)


class IdmsConnector(IdentityConnector):
    """IdentityConnector talking to each environment's IDMS over HTTP.

    Requests authenticate with the environment's own client id and secret
    (Basic auth) and carry an `x-api-key` header when the environment has an
    API key. Responses map onto IdentityIssue values: 404 is ClientNotFound,
    401/403 Unauthorized, any other non-2xx status or an unreadable body
    UnexpectedResponse, timeouts Timeout and other transport errors CallError.

    Example:
        ```python
        connector = IdmsConnector(timeout=10.0)
        scopes = await connector.fetch_client_scopes(environment, "client-123")
        ```
    """

    TIMEOUT = 10.0
    """Request timeout in seconds."""

    def __init__(
        self,
        timeout: float = TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize IdmsConnector.

        Args:
            timeout: Request timeout in seconds, used when no client is given.
            client: Shared AsyncClient. When None a client is opened per call.
        """
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    @staticmethod
    def _clients_url(environment: Environment, *parts: str) -> str:
        path = "/".join(quote(part, safe="") for part in parts)
        base = f"{environment.apim_url.rstrip('/')}/identity/clients"
        return f"{base}/{path}" if path else base

    @staticmethod
    def _headers(environment: Environment) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if environment.api_key:
            headers["x-api-key"] = environment.api_key
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        environment: Environment,
        client_id: str | None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            async with self._http() as http:
                response = await http.request(
                    method,
                    url,
                    json=json,
                    headers=self._headers(environment),
                    auth=(environment.client_id, environment.secret),
                )
        except httpx.TimeoutException as e:
            raise IdentityError(
                IdentityIssue.Timeout,
                f"IDMS request timed out: {method} {url}",
                environment_id=environment.id,
                client_id=client_id,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityError(
                IdentityIssue.CallError,
                f"IDMS request failed: {method} {url}: {e}",
                environment_id=environment.id,
                client_id=client_id,
            ) from e

        if response.is_success:
            return response

        if response.status_code == 404:
            issue = IdentityIssue.ClientNotFound
        elif response.status_code in (401, 403):
            issue = IdentityIssue.Unauthorized
        else:
            issue = IdentityIssue.UnexpectedResponse

        logger.warning(
            "idms_request_failed",
            method=method,
            environment_id=environment.id,
            client_id=client_id,
            status_code=response.status_code,
            issue=issue.value,
        )
        raise IdentityError(
            issue,
            f"IDMS returned {response.status_code} for {method} {url}",
            environment_id=environment.id,
            client_id=client_id,
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response, environment: Environment, client_id: str | None) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise IdentityError(
                IdentityIssue.UnexpectedResponse,
                "IDMS returned a body that is not JSON",
                environment_id=environment.id,
                client_id=client_id,
                status_code=response.status_code,
            ) from e

    async def fetch_client_scopes(self, environment: Environment, client_id: str) -> set[str]:
        url = self._clients_url(environment, client_id, "client-scopes")
        response = await self._request("GET", url, environment, client_id)
        body = self._json(response, environment, client_id)
        try:
            return {str(scope["clientScopeId"]) for scope in body}
        except (TypeError, KeyError) as e:
            raise IdentityError(
                IdentityIssue.UnexpectedResponse,
                "IDMS client scopes response is malformed",
                environment_id=environment.id,
                client_id=client_id,
                status_code=response.status_code,
            ) from e

    async def add_client_scope(self, environment: Environment, client_id: str, scope: str) -> None:
        url = self._clients_url(environment, client_id, "client-scopes", scope)
        await self._request("PUT", url, environment, client_id)

    async def remove_client_scope(
        self, environment: Environment, client_id: str, scope: str
    ) -> None:
        url = self._clients_url(environment, client_id, "client-scopes", scope)
        await self._request("DELETE", url, environment, client_id)

    async def create_client(self, environment: Environment, application_name: str) -> Credential:
        response = await self._request(
            "POST",
            self._clients_url(environment),
            environment,
            None,
            json={"applicationName": application_name, "description": application_name},
        )
        body = self._json(response, environment, None)
        try:
            client_id = str(body["clientId"])
            secret = str(body["secret"])
        except (TypeError, KeyError) as e:
            raise IdentityError(
                IdentityIssue.UnexpectedResponse,
                "IDMS create client response is malformed",
                environment_id=environment.id,
                status_code=response.status_code,
            ) from e

        logger.info("idms_client_created", environment_id=environment.id, client_id=client_id)
        return Credential(
            client_id=client_id,
            created=datetime.utcnow(),
            environment_id=environment.id,
        ).with_secret(secret)

    async def delete_client(self, environment: Environment, client_id: str) -> None:
        await self._request(
            "DELETE", self._clients_url(environment, client_id), environment, client_id
        )
        logger.info("idms_client_deleted", environment_id=environment.id, client_id=client_id)
