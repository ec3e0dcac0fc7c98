"""Centralized enums for type safety and IDE support."""

from enum import StrEnum


class GateState(StrEnum):
    """Lifecycle states of the access gate.

    PENDING until the identity resolves, RESOLVED once capability is known.
    REDIRECTED and CLOSED are terminal.
    """

    PENDING = "pending"
    RESOLVED = "resolved"
    REDIRECTED = "redirected"
    CLOSED = "closed"


class OrphanPolicy(StrEnum):
    """What to do with an uploaded asset when the post insert fails."""

    LOG = "log"
    DELETE = "delete"

