from typing import Optional

from fastapi import Header, HTTPException, status

from src.core.config.settings import settings


async def require_internal_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> None:
    """
    Guard for internal hooks called by other services (billing webhook sync).

    Open when no internal key is configured, which is only allowed outside
    production.
    """
    expected = settings.api.internal_api_key
    if not expected:
        return

    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required (X-API-Key)",
        )
    if x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")
