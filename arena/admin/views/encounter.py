"""Admin views for encounters and their transcripts."""

from __future__ import annotations

from sqladmin import ModelView

from arena.models.db_models import ChatMessage, Encounter

PREVIEW_LENGTH = 80


def _preview(model: ChatMessage, name: str) -> str:
    content = model.content or ""
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "…"


class EncounterAdmin(ModelView, model=Encounter):
    name = "Encounter"
    name_plural = "Encounters"
    icon = "fa-solid fa-dragon"

    column_list = [Encounter.id, Encounter.name, Encounter.status, "creator", Encounter.created_at]
    column_searchable_list = [Encounter.name, Encounter.id]
    column_sortable_list = [Encounter.name, Encounter.status, Encounter.created_at]
    column_default_sort = ("created_at", True)

    column_details_list = [
        Encounter.id,
        Encounter.name,
        Encounter.description,
        Encounter.status,
        "creator",
        Encounter.created_at,
        Encounter.updated_at,
        Encounter.messages,
    ]

    # Status is driven by runs; only the descriptive fields are editable
    form_columns = ["name", "description"]

    can_export = True
    export_types = ["csv", "json"]


class ChatMessageAdmin(ModelView, model=ChatMessage):
    name = "Transcript"
    name_plural = "Transcripts"
    icon = "fa-solid fa-scroll"

    column_list = [
        ChatMessage.id,
        "encounter",
        ChatMessage.role,
        ChatMessage.content,
        ChatMessage.created_at,
    ]
    column_searchable_list = [ChatMessage.encounter_id, ChatMessage.content]
    column_sortable_list = [ChatMessage.role, ChatMessage.created_at]
    column_default_sort = ("created_at", True)

    column_formatters = {
        ChatMessage.content: _preview,
    }

    can_create = False
    can_edit = False
    can_export = True
    export_types = ["csv", "json"]
