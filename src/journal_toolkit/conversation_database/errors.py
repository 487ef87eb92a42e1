"""
Error taxonomy for the conversation store.

Every failure surfaced by 'ConversationStore' or a repository implementation is a
'JournalError' subclass, so consumers (the API layer, scripts) can map them to a
user-visible outcome without knowing which storage backend is in use. Transport
and driver errors are wrapped in 'RemoteFailureError' with the original exception
kept as '__cause__'.
"""

from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class JournalError(Exception):
    """Base class for all conversation store errors."""


class NotAuthenticatedError(JournalError):
    """No signed-in user identity is available."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class NotFoundError(JournalError):
    """A referenced conversation or message does not exist in the remote store."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} with id {entity_id} not found")


class NoActiveConversationError(JournalError):
    """A message append was attempted with no conversation selected."""

    def __init__(self, message: str = "No conversation selected") -> None:
        super().__init__(message)


class RemoteFailureError(JournalError):
    """The remote store rejected a call (network, validation or store-side error)."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Remote store call '{operation}' failed: {reason}")


async def remote_call(operation: str, call: Awaitable[T]) -> T:
    """Await a repository call, translating foreign exceptions into 'RemoteFailureError'."""
    try:
        return await call
    except JournalError:
        raise
    except Exception as exc:
        raise RemoteFailureError(operation, str(exc) or type(exc).__name__) from exc
