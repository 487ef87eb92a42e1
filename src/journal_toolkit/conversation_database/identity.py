"""
Identity provider abstractions.

'ConversationStore' never authenticates anyone itself; it asks an
'IdentityProvider' for the current user's id before every owner-scoped call and
treats 'None' as "not signed in".
"""

from abc import ABC, abstractmethod


class IdentityProvider(ABC):
    @abstractmethod
    def current_user_id(self) -> str | None:
        """Return the signed-in user's id, or None when nobody is signed in."""
        pass


class SessionIdentity(IdentityProvider):
    """Mutable identity holder driven by sign-in / sign-out events."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id

    def current_user_id(self) -> str | None:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id must not be empty")
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None
