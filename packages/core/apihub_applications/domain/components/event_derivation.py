"""Pure functions deriving audit events from domain changes.

Every function returns a new, unsaved Event. Callers pass the acting user
and the timestamp of the change so that derivation stays deterministic.
"""

from datetime import datetime
from typing import Any

from apihub_applications.domain.models.access_request import AccessRequest
from apihub_applications.domain.models.application import Api, Application, Credential
from apihub_applications.domain.models.event import UNKNOWN, EntityType, Event, EventType
from apihub_applications.domain.models.team import Team


def _application_event(
    application: Application,
    event_type: EventType,
    user: str,
    timestamp: datetime,
    description: str = "",
    detail: str = "",
    parameters: dict[str, Any] | None = None,
) -> Event:
    return Event(
        entity_id=application.id or UNKNOWN,
        entity_type=EntityType.Application,
        event_type=event_type,
        user=user,
        timestamp=timestamp,
        description=description,
        detail=detail,
        parameters=parameters or {},
    )


def _team_event(
    team: Team,
    event_type: EventType,
    user: str,
    timestamp: datetime,
    description: str,
    detail: str,
    parameters: dict[str, Any],
) -> Event:
    return Event(
        entity_id=team.id or UNKNOWN,
        entity_type=EntityType.Team,
        event_type=event_type,
        user=user,
        timestamp=timestamp,
        description=description,
        detail=detail,
        parameters=parameters,
    )


# Applications


def application_registered(
    application: Application, team: Team | None, user: str, timestamp: datetime
) -> Event:
    parameters: dict[str, Any] = {"applicationName": application.name}
    if application.team_id is not None:
        parameters["teamId"] = application.team_id
    if team is not None:
        parameters["teamName"] = team.name
    return _application_event(
        application,
        EventType.Registered,
        user,
        timestamp,
        description=application.name,
        detail=(
            f"The application {application.name} was registered by team "
            f"{team.name if team else UNKNOWN}."
        ),
        parameters=parameters,
    )


def application_deleted(
    application: Application, soft_deleted: bool, user: str, timestamp: datetime
) -> Event:
    return _application_event(
        application,
        EventType.Deleted,
        user,
        timestamp,
        description=application.name,
        detail=f"The application {application.name} was deleted.",
        parameters={"softDeleted": soft_deleted},
    )


def api_added(application: Application, api: Api, user: str, timestamp: datetime) -> Event:
    endpoints = [str(endpoint) for endpoint in api.endpoints]
    return _application_event(
        application,
        EventType.ApiAdded,
        user,
        timestamp,
        description=api.title,
        detail=(
            f"The API {api.title} was added to the application using the following "
            f"endpoints: {', '.join(endpoints)}."
        ),
        parameters={"apiId": api.id, "apiTitle": api.title, "endpoints": endpoints},
    )


def api_removed(application: Application, api: Api, user: str, timestamp: datetime) -> Event:
    return _application_event(
        application,
        EventType.ApiRemoved,
        user,
        timestamp,
        description=api.title,
        detail=f"The API {api.title} was removed from the application.",
        parameters={"apiId": api.id, "apiTitle": api.title},
    )


def team_changed(
    application: Application,
    new_team: Team | None,
    old_team: Team | None,
    user: str,
    timestamp: datetime,
) -> Event:
    """Owning team changed; `new_team` is None when ownership was removed."""
    parameters: dict[str, Any] = {}
    if new_team is not None:
        parameters["newTeamId"] = new_team.id or UNKNOWN
        parameters["newTeamName"] = new_team.name
    if old_team is not None:
        parameters["oldTeamId"] = old_team.id or UNKNOWN
        parameters["oldTeamName"] = old_team.name
    new_name = new_team.name if new_team else "no team"
    return _application_event(
        application,
        EventType.TeamChanged,
        user,
        timestamp,
        description=new_name,
        detail=(
            f"The owning team of the application changed from "
            f"{old_team.name if old_team else 'no team'} to {new_name}."
        ),
        parameters=parameters,
    )


def credential_created(
    application: Application, credential: Credential, user: str, timestamp: datetime
) -> Event:
    return _application_event(
        application,
        EventType.CredentialCreated,
        user,
        timestamp,
        description=credential.environment_id,
        detail=(
            f"A credential with client Id {credential.client_id} was created in the "
            f"{credential.environment_id} environment."
        ),
        parameters={"environmentId": credential.environment_id, "clientId": credential.client_id},
    )


def credential_revoked(
    application: Application,
    environment_id: str,
    client_id: str,
    user: str,
    timestamp: datetime,
) -> Event:
    return _application_event(
        application,
        EventType.CredentialRevoked,
        user,
        timestamp,
        description=environment_id,
        detail=(
            f"The credential with client Id {client_id} was revoked in the "
            f"{environment_id} environment."
        ),
        parameters={"environmentId": environment_id, "clientId": client_id},
    )


def scopes_fixed(application: Application, user: str, timestamp: datetime) -> Event:
    return _application_event(
        application,
        EventType.ScopesFixed,
        user,
        timestamp,
        detail="The application's credential scopes were reconciled in every environment.",
    )


# Access requests (recorded against the owning application)


def _access_request_parameters(access_request: AccessRequest) -> dict[str, Any]:
    return {
        "accessRequestId": access_request.id or UNKNOWN,
        "apiId": access_request.api_id,
        "apiTitle": access_request.api_name,
        "environmentId": access_request.environment_id,
    }


def _access_request_event(
    access_request: AccessRequest,
    event_type: EventType,
    user: str,
    timestamp: datetime,
    description: str,
    detail: str,
) -> Event:
    return Event(
        entity_id=access_request.application_id,
        entity_type=EntityType.Application,
        event_type=event_type,
        user=user,
        timestamp=timestamp,
        description=description,
        detail=detail,
        parameters=_access_request_parameters(access_request),
    )


def access_request_created(access_request: AccessRequest) -> Event:
    return _access_request_event(
        access_request,
        EventType.Created,
        access_request.requested_by,
        access_request.requested,
        description=access_request.api_name,
        detail=(
            f"This access request was created for the {access_request.environment_id} "
            f"environment requesting access to {access_request.api_name}."
        ),
    )


def access_request_approved(access_request: AccessRequest) -> Event:
    decision = access_request.decision
    return _access_request_event(
        access_request,
        EventType.Approved,
        decision.decided_by if decision else UNKNOWN,
        decision.decided if decision else datetime.utcnow(),
        description=access_request.api_name,
        detail=(
            f"This request for access to {access_request.api_name} was approved and scopes "
            f"were added to the application's credentials in the "
            f"{access_request.environment_id} environment."
        ),
    )


def access_request_rejected(access_request: AccessRequest) -> Event:
    decision = access_request.decision
    return _access_request_event(
        access_request,
        EventType.Rejected,
        decision.decided_by if decision else UNKNOWN,
        decision.decided if decision else datetime.utcnow(),
        description=f"Rejected for {access_request.api_name}",
        detail=(
            f"This request for access to {access_request.api_name} in the "
            f"{access_request.environment_id} environment was rejected."
        ),
    )


def access_request_cancelled(access_request: AccessRequest) -> Event:
    cancelled = access_request.cancelled
    return _access_request_event(
        access_request,
        EventType.Canceled,
        cancelled.cancelled_by if cancelled else UNKNOWN,
        cancelled.cancelled if cancelled else datetime.utcnow(),
        description=f"Cancelled for {access_request.api_name}",
        detail=(
            f"This request for access to {access_request.api_name} in the "
            f"{access_request.environment_id} environment was cancelled."
        ),
    )


# Teams


def team_created(team: Team, user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.Created,
        user,
        timestamp,
        description=team.name,
        detail=(
            f"The team {team.name} was created with the following members: "
            f"{', '.join(team.member_emails)}."
        ),
        parameters={
            "teamName": team.name,
            "teamMembers": team.member_emails,
            "teamType": team.team_type.value,
        },
    )


def team_member_added(team: Team, email: str, user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.MemberAdded,
        user,
        timestamp,
        description=email,
        detail=f"{email} was added to the team.",
        parameters={"teamMember": email},
    )


def team_member_removed(team: Team, email: str, user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.MemberRemoved,
        user,
        timestamp,
        description=email,
        detail=f"{email} was removed from the team.",
        parameters={"teamMember": email},
    )


def team_renamed(team: Team, old_name: str, user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.Renamed,
        user,
        timestamp,
        description=team.name,
        detail=f"The team {old_name} was renamed to {team.name}.",
        parameters={"oldName": old_name, "newName": team.name},
    )


def egresses_added(team: Team, egresses: list[str], user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.EgressAdded,
        user,
        timestamp,
        description=f"{len(egresses)} egress(es) added",
        detail=f"The following egresses were added to the team: {', '.join(egresses)}.",
        parameters={"egresses": list(egresses)},
    )


def egress_removed(team: Team, egress: str, user: str, timestamp: datetime) -> Event:
    return _team_event(
        team,
        EventType.EgressRemoved,
        user,
        timestamp,
        description=egress,
        detail=f"The egress {egress} was removed from the team.",
        parameters={"egress": egress},
    )
