from tokenvault.models.refresh_token import RefreshTokenModel
from tokenvault.models.user import User

__all__ = [
    "RefreshTokenModel",
    "User",
]
