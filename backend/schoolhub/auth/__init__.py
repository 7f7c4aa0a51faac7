"""Authentication package: credentials, tokens and the calling principal."""
from .service import AuthService, get_current_user, get_principal
from .router import router as auth_router

__all__ = [
    'AuthService',
    'get_current_user',
    'get_principal',
    'auth_router'
]
