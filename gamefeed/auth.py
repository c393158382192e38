"""
Viewer identity.

Token verification happens upstream (gateway); by the time a request reaches
this service the authenticated user id travels in the X-User-Id header.
"""
from typing import Optional

from fastapi import Header, HTTPException, status


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id
