# Import the Base class to make it accessible for models
# and for Alembic discovery via Base.metadata
from app.db.base_class import Base  # noqa: F401

from .enums import Gender, InteractionAction
from .user import User
from .discovery import Like, Match, Interaction
from .message import Message

__all__ = [
    "User",
    "Like",
    "Match",
    "Interaction",
    "Message",
    "Gender",
    "InteractionAction",
]
