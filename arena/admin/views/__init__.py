"""Admin model view configurations."""

from arena.admin.views.encounter import ChatMessageAdmin, EncounterAdmin
from arena.admin.views.user import UserAdmin

__all__ = [
    "UserAdmin",
    "EncounterAdmin",
    "ChatMessageAdmin",
]
