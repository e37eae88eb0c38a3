from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request

from erp_ledger.api.deps import get_company_id, get_user_id
from erp_ledger.database import db
from erp_ledger.models.accounting import Account, FiscalYear
from erp_ledger.models.audit import ActionType
from erp_ledger.services.ledger import BalanceSheet, IncomeStatement, LedgerReport, TrialBalance, ledger_service
from erp_ledger.services.periods import period_service
from erp_ledger.services.syscohada import class_info
from erp_ledger.validators import (
    EntryValidationError, ErrorCode, FieldError, validate_account, validate_balance_sheet_query,
    validate_income_statement_query, validate_ledger_query
)

router = APIRouter(prefix="/api/accounting", tags=["Accounting"])

@router.get("/ledger", response_model=LedgerReport)
async def get_ledger(request: Request, company_id: str = Depends(get_company_id)):
    result = validate_ledger_query(dict(request.query_params))
    if not result.ok:
        raise EntryValidationError(result.errors)
    query = result.value
    if not query.account:
        raise EntryValidationError([FieldError(
            field="account",
            code=ErrorCode.MISSING_REQUIRED_FIELD,
            message="An account is required to read its ledger"
        )])

    account = await db.accounts.get(query.account)
    if not account or account.company_id != company_id:
        raise HTTPException(status_code=404, detail="Account not found")
    return await ledger_service.get_ledger(query)

@router.get("/trial-balance", response_model=TrialBalance)
async def get_trial_balance(request: Request, company_id: str = Depends(get_company_id)):
    """Per-account totals over a date range; same date parameters as the ledger."""
    result = validate_ledger_query(dict(request.query_params))
    if not result.ok:
        raise EntryValidationError(result.errors)
    query = result.value
    return await ledger_service.get_trial_balance(company_id, query.start_date, query.end_date)

@router.get("/balance-sheet", response_model=BalanceSheet)
async def get_balance_sheet(request: Request, company_id: str = Depends(get_company_id)):
    """Balance sheet as of `date` (today by default), optionally beside `comparative_date`."""
    result = validate_balance_sheet_query(dict(request.query_params))
    if not result.ok:
        raise EntryValidationError(result.errors)
    return await ledger_service.get_balance_sheet(company_id, result.value)

@router.get("/income-statement", response_model=IncomeStatement)
async def get_income_statement(request: Request, company_id: str = Depends(get_company_id)):
    result = validate_income_statement_query(dict(request.query_params))
    if not result.ok:
        raise EntryValidationError(result.errors)
    return await ledger_service.get_income_statement(company_id, result.value)

@router.post("/periods/close", response_model=FiscalYear)
async def close_period(
    payload: Dict[str, Any] = Body(...),
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    return await period_service.close_period(company_id, payload, user_id)

@router.post("/fiscal-years/{year}", response_model=FiscalYear, status_code=201)
async def open_fiscal_year(year: int, company_id: str = Depends(get_company_id)):
    if year < 1900 or year > 9999:
        raise HTTPException(status_code=400, detail="Invalid fiscal year")
    return await period_service.open_fiscal_year(company_id, year)

@router.get("/accounts")
async def list_accounts(company_id: str = Depends(get_company_id)):
    accounts = await db.accounts.list({"company_id": company_id}, limit=5000, sort=[("code", 1)])
    return {"success": True, "data": accounts}

@router.post("/accounts", response_model=Account, status_code=201)
async def create_account(
    payload: Dict[str, Any] = Body(...),
    company_id: str = Depends(get_company_id),
    user_id: Optional[str] = Depends(get_user_id)
):
    result = validate_account(payload)
    if not result.ok:
        raise EntryValidationError(result.errors)
    draft = result.value

    existing = await db.accounts.get_by_code(company_id, draft.code)
    if existing:
        raise HTTPException(status_code=400, detail=f"Account {draft.code} already exists")

    account = Account(company_id=company_id, **draft.model_dump())
    await db.accounts.create(account)
    await db.audit.log_action(
        company_id=company_id,
        actor_id=user_id,
        action_type=ActionType.ACCOUNT_CREATED,
        entity=account.code,
        details=f"Account {account.code} - {account.label} created",
        metadata=class_info(account.code)
    )
    return account
