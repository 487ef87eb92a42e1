"""
Conversation synchronization layer.

    from journal_toolkit.conversation_database import ConversationStore, build_in_memory_databases

    conversation_db, message_db, profile_db = build_in_memory_databases()
    store = ConversationStore(conversation_db, message_db, SessionIdentity("user-1"))
"""

from journal_toolkit.conversation_database.data_models import (
    Conversation,
    ConversationDatabase,
    Message,
    MessageDatabase,
    Profile,
    ProfileDatabase,
    ProfileUpdate,
    Roles,
)
from journal_toolkit.conversation_database.errors import (
    JournalError,
    NoActiveConversationError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteFailureError,
    remote_call,
)
from journal_toolkit.conversation_database.identity import IdentityProvider, SessionIdentity
from journal_toolkit.conversation_database.in_memory import build_in_memory_databases
from journal_toolkit.conversation_database.store import AppendResult, ConversationStore

__all__ = [
    "AppendResult",
    "Conversation",
    "ConversationDatabase",
    "ConversationStore",
    "IdentityProvider",
    "JournalError",
    "Message",
    "MessageDatabase",
    "NoActiveConversationError",
    "NotAuthenticatedError",
    "NotFoundError",
    "Profile",
    "ProfileDatabase",
    "ProfileUpdate",
    "RemoteFailureError",
    "Roles",
    "SessionIdentity",
    "build_in_memory_databases",
    "remote_call",
]
