"""Request context for session scoping."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionContext:
    """Identity of the client session making a request.

    Used to scope materials, quiz state and history to one session.
    """

    session_id: str
