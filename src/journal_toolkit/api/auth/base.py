"""
Request authentication for the journal API.

The API never decides who a caller is on its own. An 'AuthProvider' resolves the
user id for each request, and that id selects the caller's 'JournalSession' in
the 'SessionManager'. 'HeaderAuthProvider' is the bundled implementation.
"""

from abc import ABC, abstractmethod

from fastapi import FastAPI, Request


class AuthProvider(ABC):
    @abstractmethod
    def get_current_user_id(self, request: Request) -> str:
        """FastAPI dependency resolving the caller's user id.

        Raise 'HTTPException' (401) when the request carries no usable identity.
        """
        pass

    @abstractmethod
    def bind_to_app(self, app: FastAPI) -> None:
        """Hook for providers that need their own routes or middleware."""
        pass
