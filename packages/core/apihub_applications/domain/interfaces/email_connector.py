"""EmailConnector interface for notification emails."""

from abc import ABC, abstractmethod

from apihub_applications.domain.models.access_request import AccessRequest, AccessRequestRequest
from apihub_applications.domain.models.application import Application
from apihub_applications.domain.models.team import Team


class EmailConnector(ABC):
    """Abstract interface for sending notification emails.

    Callers treat every email as best-effort: a failure is logged and never
    undoes the change that triggered it.
    """

    @abstractmethod
    async def send_ownership_changed_to_old_team(
        self, old_team: Team, new_team: Team, application: Application
    ) -> None:
        """Tell the previous owners that another team now owns the application.

        Raises:
            EmailError: If the email could not be sent.
        """
        pass

    @abstractmethod
    async def send_ownership_changed_to_new_team(
        self, new_team: Team, application: Application
    ) -> None:
        """Tell the new owners that they now own the application.

        Raises:
            EmailError: If the email could not be sent.
        """
        pass

    @abstractmethod
    async def send_access_request_submitted(
        self, application: Application, request: AccessRequestRequest
    ) -> None:
        """Confirm a submission to the requester.

        Raises:
            EmailError: If the email could not be sent.
        """
        pass

    @abstractmethod
    async def send_access_approved(
        self, application: Application, access_request: AccessRequest, recipients: list[str]
    ) -> None:
        """Tell the application's team that a request was approved.

        Raises:
            EmailError: If the email could not be sent.
        """
        pass

    @abstractmethod
    async def send_access_rejected(
        self, application: Application, access_request: AccessRequest, recipients: list[str]
    ) -> None:
        """Tell the application's team that a request was rejected.

        Raises:
            EmailError: If the email could not be sent.
        """
        pass


class EmailError(Exception):
    """Raised when a notification email cannot be sent."""

    pass
