"""
Who may see, toggle and edit map resources.

The role is the only edit gate; assignment is the only gate for Ordner.
Points and areas go through the same functions, only their assigned_users
are looked at.
"""
from dataclasses import dataclass
from enum import Enum

from .errors import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    EINSATZLEITER = "einsatzleiter"
    BEREICHSLEITER = "bereichsleiter"
    ORDNER = "ordner"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


EDITOR_ROLES = (Role.ADMIN, Role.EINSATZLEITER)


@dataclass(frozen=True)
class Actor:
    username: str
    role: Role


def _role(value):
    return Role.parse(value)


def role_name(value):
    role = _role(value)
    return role.value if role else str(value)


def is_assigned(actor_name, resource):
    return actor_name in resource.assigned_users


def can_edit(actor_role):
    return _role(actor_role) in EDITOR_ROLES


def can_see(actor_role, actor_name, resource):
    role = _role(actor_role)
    if role in EDITOR_ROLES or role is Role.BEREICHSLEITER:
        return True
    if role is Role.ORDNER:
        return is_assigned(actor_name, resource)
    # Unknown roles see nothing
    return False


def can_toggle(actor_role, actor_name, resource):
    role = _role(actor_role)
    if role in EDITOR_ROLES:
        return True
    if role is Role.ORDNER:
        return is_assigned(actor_name, resource)
    return False


def require_edit(actor: Actor):
    if not can_edit(actor.role):
        raise AuthorizationError(f"role '{role_name(actor.role)}' may not create, change or delete resources")


def require_toggle(actor: Actor, resource):
    if not can_toggle(actor.role, actor.username, resource):
        raise AuthorizationError(f"'{actor.username}' may not change the status of '{resource.name}'")


def visible(actor: Actor, resources):
    return [r for r in resources if can_see(actor.role, actor.username, r)]
