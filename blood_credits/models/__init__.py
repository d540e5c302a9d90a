from .profile_document import ProfileDocument
from .processed_event import ProcessedEvent
from .user_account import UserAccount

__all__ = [
    "ProfileDocument",
    "ProcessedEvent",
    "UserAccount",
]
