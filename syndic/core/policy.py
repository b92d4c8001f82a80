"""Role based authorization policy.

The role -> capability matrix is plain data so it can be audited and
tested cell by cell; nothing here branches on a role directly.
"""
import enum
from typing import Dict, FrozenSet, List

from ..models.enums import Role
from .exceptions import AuthorizationError
from .logging import SecurityLogger


class Capability(str, enum.Enum):
    """Named permissions checked by the policy."""

    VIEW_DASHBOARD = "viewDashboard"
    VIEW_APARTMENTS = "viewApartments"
    MANAGE_APARTMENTS = "manageApartments"
    VIEW_OWN_APARTMENT = "viewOwnApartment"
    VIEW_BILLS = "viewBills"
    MANAGE_BILLS = "manageBills"
    PAY_OWN_BILLS = "payOwnBills"
    VIEW_EXPENSES = "viewExpenses"
    MANAGE_EXPENSES = "manageExpenses"
    VIEW_MAINTENANCE = "viewMaintenance"
    SUBMIT_MAINTENANCE = "submitMaintenance"
    MANAGE_MAINTENANCE = "manageMaintenance"
    HANDLE_ASSIGNED_MAINTENANCE = "handleAssignedMaintenance"
    VIEW_MEETINGS = "viewMeetings"
    MANAGE_MEETINGS = "manageMeetings"
    VOTE = "vote"
    VIEW_ANNOUNCEMENTS = "viewAnnouncements"
    MANAGE_ANNOUNCEMENTS = "manageAnnouncements"
    VIEW_REPORTS = "viewReports"
    MANAGE_USERS = "manageUsers"
    MANAGE_SETTINGS = "manageSettings"


_OWNER = frozenset({
    Capability.VIEW_DASHBOARD,
    Capability.VIEW_OWN_APARTMENT,
    Capability.VIEW_BILLS,
    Capability.PAY_OWN_BILLS,
    Capability.VIEW_MAINTENANCE,
    Capability.SUBMIT_MAINTENANCE,
    Capability.VIEW_MEETINGS,
    Capability.VOTE,
    Capability.VIEW_ANNOUNCEMENTS,
})

# Capabilities only an owner holds over their lot.
OWNERSHIP_ONLY: FrozenSet[Capability] = frozenset({Capability.VOTE})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.OWNER: _OWNER,
    Role.TENANT: _OWNER - OWNERSHIP_ONLY,
    Role.ACCOUNTANT: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.VIEW_APARTMENTS,
        Capability.VIEW_BILLS,
        Capability.MANAGE_BILLS,
        Capability.VIEW_EXPENSES,
        Capability.MANAGE_EXPENSES,
        Capability.VIEW_REPORTS,
        Capability.VIEW_ANNOUNCEMENTS,
    }),
    Role.SERVICE_PROVIDER: frozenset({
        Capability.VIEW_DASHBOARD,
        Capability.HANDLE_ASSIGNED_MAINTENANCE,
        Capability.VIEW_ANNOUNCEMENTS,
    }),
}

# Dashboard routes and the capabilities, any one of which, open them.
ROUTE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    "/": frozenset({Capability.VIEW_DASHBOARD}),
    "/apartments": frozenset({Capability.VIEW_APARTMENTS, Capability.VIEW_OWN_APARTMENT}),
    "/billing": frozenset({Capability.VIEW_BILLS}),
    "/expenses": frozenset({Capability.VIEW_EXPENSES}),
    "/maintenance": frozenset({
        Capability.VIEW_MAINTENANCE,
        Capability.HANDLE_ASSIGNED_MAINTENANCE,
    }),
    "/meetings": frozenset({Capability.VIEW_MEETINGS}),
    "/announcements": frozenset({Capability.VIEW_ANNOUNCEMENTS}),
    "/reports": frozenset({Capability.VIEW_REPORTS}),
    "/users": frozenset({Capability.MANAGE_USERS}),
    "/settings": frozenset({Capability.MANAGE_SETTINGS}),
}


def capabilities_for(role: Role) -> FrozenSet[Capability]:
    return ROLE_CAPABILITIES.get(Role(role), frozenset())


def can_access(role: Role, capability: Capability) -> bool:
    """Return True when ``role`` holds ``capability``."""
    try:
        return Capability(capability) in capabilities_for(role)
    except ValueError:
        return False


def can_access_route(role: Role, path: str) -> bool:
    """Return True when ``role`` may open the dashboard route ``path``.

    Unknown routes are denied.
    """
    normalized = "/" + path.strip("/") if path else "/"
    required = ROUTE_CAPABILITIES.get(normalized)
    if not required:
        return False
    return bool(required & capabilities_for(role))


def allowed_routes(role: Role) -> List[str]:
    """Dashboard routes visible to ``role``, in navigation order."""
    return [path for path in ROUTE_CAPABILITIES if can_access_route(role, path)]


def ensure_access(user, capability: Capability) -> None:
    """Raise AuthorizationError unless ``user`` holds ``capability``."""
    if not can_access(user.role, capability):
        SecurityLogger.log_unauthorized_access(
            capability=Capability(capability).value,
            user_id=str(user.id),
            role=Role(user.role).value,
        )
        raise AuthorizationError(
            details={"capability": Capability(capability).value}
        )
