# Overview: Service-layer operations for access policy; the authorize() decision and its enforcement.

"""
Access Policy Evaluator

authorize() is a pure decision over the fixed role matrix in
shopledger.permissions. It never raises: a Deny is a value the caller must
check before attempting a mutation.

require() is the enforcing variant consulted by every mutating operation.
It raises AuthorizationError on Deny and appends a SecurityEvent.

DESIGN PRINCIPLES:
- Fail closed: unknown roles, tables, and operations are denied
- Log denials only: grants are not logged
- Decoupled from authentication: input is a role string, not a session
"""

from __future__ import annotations

import logging
from enum import Enum

from ..extensions import db
from ..errors import AuthorizationError
from ..models import SecurityEvent, ROLES
from ..permissions import get_allowed_roles

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    PERMIT = "permit"
    DENY = "deny"

    @property
    def permitted(self) -> bool:
        return self is Decision.PERMIT


def authorize(role: str | None, table: str, operation: str) -> Decision:
    """Decide whether role may perform operation on table. No side effects."""
    if role not in ROLES:
        return Decision.DENY
    if role in get_allowed_roles(table, operation):
        return Decision.PERMIT
    return Decision.DENY


def log_security_event(
    *,
    event_type: str,
    profile_id: int | None = None,
    role: str | None = None,
    table_name: str | None = None,
    operation: str | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    """
    Append a security event and commit it.

    Only call this before the caller has pending writes of its own.
    """
    event = SecurityEvent(
        profile_id=profile_id,
        role=role,
        event_type=event_type,
        table_name=table_name,
        operation=operation,
        reason=reason,
    )
    db.session.add(event)
    db.session.commit()
    return event


def require(actor, table: str, operation: str, *, audit: bool = True) -> None:
    """
    Enforce authorize() for actor (a Profile, or None for anonymous).

    audit=False skips the SecurityEvent row; used for re-checks inside an
    open transaction, where committing the event would commit the caller's
    partial work too.
    """
    role = getattr(actor, "role", None)
    if getattr(actor, "is_active", True) is False:
        role = None

    decision = authorize(role, table, operation)
    if decision.permitted:
        return

    logger.warning(
        "Authorization denied: profile=%s role=%s op=%s table=%s",
        getattr(actor, "id", None), role, operation, table,
    )
    if audit:
        log_security_event(
            event_type="AUTHORIZATION_DENIED",
            profile_id=getattr(actor, "id", None),
            role=role,
            table_name=table,
            operation=operation,
            reason=f"{role or 'anonymous'} lacks {operation} on {table}",
        )
    raise AuthorizationError(role, table, operation)
