"""Admin view for users."""

from sqladmin import ModelView

from arena.models.db_models import User


class UserAdmin(ModelView, model=User):
    name = "User"
    name_plural = "Users"
    icon = "fa-solid fa-users"

    column_list = [User.id, User.username, User.role, User.is_active, User.created_at]
    column_searchable_list = [User.username, User.id]
    column_sortable_list = [User.username, User.created_at, User.role]
    column_default_sort = ("created_at", True)

    # Credentials are never editable from the dashboard
    form_columns = ["username", "email", "role", "is_active"]

    column_details_list = [
        User.id,
        User.username,
        User.email,
        User.role,
        User.is_active,
        User.created_at,
        User.encounters,
    ]

    can_export = True
    export_types = ["csv", "json"]
