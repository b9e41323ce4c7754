"""Role names and the fixed role-to-prefix table."""

from __future__ import annotations

from registrar.core.models import Role

ROLE_PREFIXES: dict[str, str] = {
    Role.chairman: "CHM",
    Role.admin: "ADM",
    Role.teacher: "TCH",
    Role.accountant: "ACC",
    Role.librarian: "LIB",
    Role.receptionist: "RCP",
    Role.transport: "TRN",
    Role.warden: "WRD",
    Role.staff: "STF",
    Role.user: "USR",
}

DEFAULT_PREFIX = "USR"

# The chairman is a singleton and never touches a counter.
CHAIRMAN_IDENTIFIER = "CHM1"


def normalize_role(role: str | None) -> str:
    """Lower-case *role*; ``None`` or blank means ``"user"``."""
    if role is None:
        return Role.user.value
    normalized = role.strip().lower()
    return normalized or Role.user.value


def prefix_for(role: str | None) -> str:
    """Return the identifier prefix for *role*, falling back to ``USR``."""
    return ROLE_PREFIXES.get(normalize_role(role), DEFAULT_PREFIX)


def is_chairman(role: str | None) -> bool:
    return normalize_role(role) == Role.chairman
