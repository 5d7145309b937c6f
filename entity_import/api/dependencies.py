"""
Shared dependencies for the import endpoints.
"""
from typing import Optional

from fastapi import Header, HTTPException, UploadFile

IDENTITY_HEADER = "X-User-Identity"


def get_current_identity(x_user_identity: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the identity that owns records created by an import.

    Raises:
    - HTTPException(401): If the identity header is missing or blank
    """
    identity = (x_user_identity or "").strip()
    if not identity:
        raise HTTPException(status_code=401, detail=f"Missing {IDENTITY_HEADER} header")
    return identity


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, rejecting empty payloads."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return content
