from journal_toolkit.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import Message, MessageDatabase, Roles
from journal_toolkit.conversation_database.data_models.profile import Profile, ProfileDatabase, ProfileUpdate

__all__ = [
    "Conversation",
    "ConversationDatabase",
    "Message",
    "MessageDatabase",
    "Profile",
    "ProfileDatabase",
    "ProfileUpdate",
    "Roles",
]
