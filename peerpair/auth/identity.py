"""
identity.py
-----------
Purpose:
    Resolve the calling member id.

Notes:
    - Authentication happens upstream; the gateway forwards the verified
      member id in a trusted header (settings.MEMBER_ID_HEADER).
    - Provides `member_dependency` for pairing routes.
"""

from fastapi import HTTPException, Request, status

from peerpair.config import settings


def member_dependency(request: Request) -> str:
    member_id = (request.headers.get(settings.MEMBER_ID_HEADER) or "").strip()
    if not member_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing caller identity header: {settings.MEMBER_ID_HEADER}",
        )
    return member_id
