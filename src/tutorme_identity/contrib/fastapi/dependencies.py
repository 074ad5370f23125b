"""FastAPI dependencies for the two-factor routes."""

from __future__ import annotations

from fastapi import HTTPException


def get_current_account_id() -> str:
    """Return the authenticated account id or raise 401.

    The default rejects every request. Applications override it with
    their own session lookup:

    Example:
        ```python
        app.dependency_overrides[get_current_account_id] = read_session_account_id
        ```
    """
    raise HTTPException(
        status_code=401,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


__all__: list[str] = ["get_current_account_id"]
