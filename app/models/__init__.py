"""
Swipematch — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.user import User
from app.models.match import Decision, Match, Swipe
from app.models.message import Message

__all__ = [
    "User",
    "Decision",
    "Match",
    "Swipe",
    "Message",
]
