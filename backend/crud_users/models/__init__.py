from crud_users.models.user import Role, User

__all__ = [
    "Role",
    "User",
]
