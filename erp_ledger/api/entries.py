from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request

from erp_ledger.api.deps import get_company_id, get_user_id
from erp_ledger.database import db
from erp_ledger.models.accounting import AccountingEntry
from erp_ledger.services.posting import entry_workflow
from erp_ledger.validators import EntryValidationError, validate_search_entry

router = APIRouter(prefix="/api/accounting", tags=["Accounting entries"])

async def get_company_entry(entry_id: str, company_id: str) -> AccountingEntry:
    entry = await db.entries.get(entry_id)
    if not entry or entry.company_id != company_id:
        raise HTTPException(status_code=404, detail="Accounting entry not found")
    return entry

@router.get("/entries")
async def list_entries(request: Request, company_id: str = Depends(get_company_id)):
    result = validate_search_entry(dict(request.query_params))
    if not result.ok:
        raise EntryValidationError(result.errors)
    query = result.value

    items, total = await db.entries.search(company_id, query)
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": query.page,
            "limit": query.limit,
            "total": total,
            "pages": (total + query.limit - 1) // query.limit,
        },
    }

@router.get("/entries/{entry_id}", response_model=AccountingEntry)
async def get_entry(entry_id: str, company_id: str = Depends(get_company_id)):
    return await get_company_entry(entry_id, company_id)

@router.get("/entries/{entry_id}/history")
async def get_entry_history(entry_id: str, company_id: str = Depends(get_company_id)):
    """Audit trail of the entry, oldest event first."""
    entry = await get_company_entry(entry_id, company_id)
    events = await db.audit.get_for_entity(company_id, entry.number)
    return {"success": True, "data": events}

@router.post("/entries", response_model=AccountingEntry, status_code=201)
async def create_entry(
    payload: Dict[str, Any] = Body(...),
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    return await entry_workflow.create_entry(payload, company_id, user_id)

@router.put("/entries/{entry_id}", response_model=AccountingEntry)
async def update_entry(
    entry_id: str,
    payload: Dict[str, Any] = Body(...),
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    await get_company_entry(entry_id, company_id)
    return await entry_workflow.update_entry(entry_id, payload, user_id)

@router.delete("/entries/{entry_id}")
async def delete_entry(
    entry_id: str,
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    await get_company_entry(entry_id, company_id)
    await entry_workflow.delete_entry(entry_id, user_id)
    return {"success": True, "message": "Accounting entry deleted"}

@router.post("/entries/{entry_id}/post", response_model=AccountingEntry)
async def post_entry(
    entry_id: str,
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    await get_company_entry(entry_id, company_id)
    return await entry_workflow.post_entry(entry_id, user_id)

@router.post("/entries/{entry_id}/validate", response_model=AccountingEntry)
async def validate_entry(
    entry_id: str,
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    await get_company_entry(entry_id, company_id)
    return await entry_workflow.validate_posted_entry(entry_id, user_id)

@router.post("/entries/{entry_id}/cancel", response_model=AccountingEntry)
async def cancel_entry(
    entry_id: str,
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    await get_company_entry(entry_id, company_id)
    return await entry_workflow.cancel_entry(entry_id, user_id)
