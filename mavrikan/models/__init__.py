from mavrikan.models.conversation import Conversation
from mavrikan.models.lead import Lead

__all__ = [
    "Conversation",
    "Lead",
]
