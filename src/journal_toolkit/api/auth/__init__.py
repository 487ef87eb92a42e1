from journal_toolkit.api.auth.base import AuthProvider
from journal_toolkit.api.auth.header import HeaderAuthProvider

__all__ = ["AuthProvider", "HeaderAuthProvider"]
