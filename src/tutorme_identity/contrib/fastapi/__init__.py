"""FastAPI integration for tutorme-identity."""

from .dependencies import get_current_account_id
from .errors import (
    error_response,
    register_exception_handlers,
    status_code_for,
    two_factor_exception_handler,
)
from .router import DEFAULT_PREFIX, create_two_factor_router

__all__: list[str] = [
    # Router
    "create_two_factor_router",
    "DEFAULT_PREFIX",
    # Dependencies
    "get_current_account_id",
    # Errors
    "register_exception_handlers",
    "two_factor_exception_handler",
    "error_response",
    "status_code_for",
]
