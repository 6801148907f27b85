"""Gate registry and policy façade.

Every Permission row becomes a named gate closed over its slug. The
registry caches the name -> check mapping, never a result: each gate
call re-evaluates ``has_permission`` against the store.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rolekit.core.exceptions import ForbiddenError, StoreUnavailableError, UnauthenticatedError
from rolekit.models import Permission
from rolekit.services.authorization import Authorizable

logger = logging.getLogger("rolekit.gate")

Ability = Callable[[Authorizable], bool]


def _permission_gate(slug: str) -> Ability:
    def check(subject: Authorizable) -> bool:
        return subject.has_permission(slug)
    return check


class GateRegistry:
    """Process-wide mapping of ability names to boolean checks."""

    def __init__(self):
        self._abilities: Dict[str, Ability] = {}
        self._permission_gates: set = set()

    def define(self, name: str, check: Ability) -> None:
        self._abilities[name] = check

    def forget(self, name: str) -> None:
        self._abilities.pop(name, None)
        self._permission_gates.discard(name)

    def has(self, name: str) -> bool:
        return name in self._abilities

    def abilities(self) -> List[str]:
        return sorted(self._abilities)

    def register_permissions(self, db: Session) -> int:
        """Define one gate per Permission row; returns how many were defined.

        Best effort: if the permissions table is missing or the database
        cannot be reached, log and register nothing.
        """
        try:
            if not inspect(db.get_bind()).has_table(Permission.__tablename__):
                raise StoreUnavailableError("permissions table does not exist yet")
            slugs = [row[0] for row in db.query(Permission.slug).all()]
        except (StoreUnavailableError, SQLAlchemyError) as e:
            logger.warning("Skipping permission gate registration: %s", e)
            return 0

        for slug in slugs:
            self.define(slug, _permission_gate(slug))
            self._permission_gates.add(slug)
        logger.info("Registered %d permission gate(s)", len(slugs))
        return len(slugs)

    def refresh(self, db: Session) -> int:
        """Drop permission gates and register them again from the store."""
        for name in list(self._permission_gates):
            self.forget(name)
        return self.register_permissions(db)

    def check(self, name: str, subject: Optional[Authorizable]) -> bool:
        if subject is None:
            return False
        ability = self._abilities.get(name)
        if ability is None:
            return False
        return bool(ability(subject))


gate_registry = GateRegistry()


class Gate:
    """Named ability checks for one (possibly absent) subject."""

    def __init__(self, subject: Optional[Authorizable], registry: Optional[GateRegistry] = None):
        self.subject = subject
        self.registry = registry or gate_registry

    def allows(self, name: str) -> bool:
        return self.registry.check(name, self.subject)

    def denies(self, name: str) -> bool:
        return not self.allows(name)

    def any(self, *names: str) -> bool:
        return any(self.allows(name) for name in names)

    def none(self, *names: str) -> bool:
        return not self.any(*names)

    def authorize(self, name: str, message: str = "Unauthorized. Insufficient permissions.") -> None:
        """Raise unless the subject passes the named gate."""
        if self.subject is None:
            raise UnauthenticatedError()
        if not self.allows(name):
            raise ForbiddenError(message)


def _as_list(value: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


def template_directives(subject: Optional[Authorizable]) -> Dict[str, Callable[..., bool]]:
    """Boolean helpers for template conditionals, e.g. Jinja globals.

    With no subject every helper returns False.
    """

    def role(roles) -> bool:
        return subject is not None and subject.has_role(*_as_list(roles))

    def hasallroles(roles) -> bool:
        return subject is not None and all(subject.has_role(r) for r in _as_list(roles))

    def permission(permissions) -> bool:
        return subject is not None and subject.has_permission(*_as_list(permissions))

    def hasallpermissions(permissions) -> bool:
        return subject is not None and all(subject.has_permission(p) for p in _as_list(permissions))

    return {
        "role": role,
        "hasrole": role,
        "hasanyrole": role,
        "hasallroles": hasallroles,
        "permission": permission,
        "haspermission": permission,
        "hasanypermission": permission,
        "hasallpermissions": hasallpermissions,
    }
