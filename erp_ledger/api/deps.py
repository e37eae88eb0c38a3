from typing import Optional
from fastapi import Header, HTTPException

async def get_company_id(x_company_id: Optional[str] = Header(default=None)) -> str:
    """Company the request acts on, from the ``X-Company-Id`` header."""
    if not x_company_id:
        raise HTTPException(status_code=400, detail="X-Company-Id header is required")
    return x_company_id

async def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id
