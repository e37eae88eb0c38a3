import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

from erp_ledger.database import db
from erp_ledger.models.accounting import BALANCE_TOLERANCE, Account, Journal
from erp_ledger.services.syscohada import (
    SYSCOHADA_CLASSES, account_class, is_balance_sheet_account, is_income_statement_account, signed_balance
)
from erp_ledger.validators import BalanceSheetQuery, IncomeStatementQuery, LedgerQuery

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# always on the asset side; class 4 follows the sign of its balance
ASSET_CLASSES = {2, 3, 5}
# formats that show one row per SYSCOHADA class instead of one per account
GROUPED_FORMATS = {"simplified", "function"}

def _amount(value: float) -> Decimal:
    return Decimal(str(value))

def year_earlier(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year - 1, day=28)

class LedgerLine(BaseModel):
    entry_id: Optional[str] = None
    entry_number: str
    date: datetime
    journal: Journal
    label: str
    reference: Optional[str] = None
    debit: float = 0.0
    credit: float = 0.0
    balance: float = 0.0

class LedgerReport(BaseModel):
    account: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    opening_balance: Optional[float] = None
    lines: List[LedgerLine] = Field(default_factory=list)
    total_debit: float = 0.0
    total_credit: float = 0.0
    closing_balance: Optional[float] = None

class TrialBalanceRow(BaseModel):
    account: str
    code: Optional[str] = None
    label: Optional[str] = None
    account_class: Optional[int] = None
    debit: float = 0.0
    credit: float = 0.0
    balance: float = 0.0

class TrialBalance(BaseModel):
    company_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rows: List[TrialBalanceRow] = Field(default_factory=list)
    total_debit: float = 0.0
    total_credit: float = 0.0
    is_balanced: bool = True

class StatementRow(BaseModel):
    account: Optional[str] = None
    code: str
    label: str
    account_class: int
    amount: float = 0.0
    # balance on the account's natural side
    balance: float = 0.0

class BalanceSheet(BaseModel):
    company_id: str
    date: date
    format: str = "syscohada"
    assets: List[StatementRow] = Field(default_factory=list)
    liabilities: List[StatementRow] = Field(default_factory=list)
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    difference: float = 0.0
    comparative: Optional["BalanceSheet"] = None

class IncomeStatement(BaseModel):
    company_id: str
    start_date: date
    end_date: date
    format: str = "syscohada"
    expenses: List[StatementRow] = Field(default_factory=list)
    revenues: List[StatementRow] = Field(default_factory=list)
    total_expenses: float = 0.0
    total_revenues: float = 0.0
    net_income: float = 0.0
    profit_margin: float = 0.0
    comparative: Optional["IncomeStatement"] = None

Totals = Tuple[Dict[str, Decimal], Dict[str, Decimal], Dict[str, Account]]

def _statement_row(account: Account, amount: Decimal, debit: Decimal, credit: Decimal) -> StatementRow:
    return StatementRow(
        account=account.id,
        code=account.code,
        label=account.label,
        account_class=account.account_class,
        amount=float(amount),
        balance=float(signed_balance(account.code, debit, credit))
    )

def _chart_balances(totals: Totals, belongs: Callable[[str], bool]) -> List[Tuple[Account, Decimal, Decimal]]:
    """(account, debit, credit) of active chart accounts with a non-zero balance, by code."""
    debits, credits, accounts = totals
    balances = []
    for account_id, account in accounts.items():
        if not account.is_active or not belongs(account.code):
            continue
        debit, credit = debits.get(account_id, ZERO), credits.get(account_id, ZERO)
        if debit != credit:
            balances.append((account, debit, credit))
    balances.sort(key=lambda item: item[0].code)
    return balances

def _total(rows: List[StatementRow]) -> Decimal:
    return sum((_amount(row.amount) for row in rows), ZERO)

def group_by_class(rows: List[StatementRow]) -> List[StatementRow]:
    """One row per SYSCOHADA class, summing the account rows of that class."""
    amounts: Dict[int, Decimal] = defaultdict(Decimal)
    balances: Dict[int, Decimal] = defaultdict(Decimal)
    for row in rows:
        amounts[row.account_class] += _amount(row.amount)
        balances[row.account_class] += _amount(row.balance)
    return [
        StatementRow(
            code=str(number),
            label=SYSCOHADA_CLASSES[number]["name"],
            account_class=number,
            amount=float(amounts[number]),
            balance=float(balances[number])
        )
        for number in sorted(amounts)
    ]

class LedgerService:
    """Read side of the books: account ledgers, the trial balance and the financial statements."""

    async def opening_balance(self, account_id: str, before: date,
                              journal: Optional[Journal] = None) -> Decimal:
        """Debit minus credit of everything booked on the account before ``before``."""
        entries = await db.entries.find_booked_for_account(
            account_id, end=before - timedelta(days=1), journal=journal
        )
        balance = Decimal("0")
        for entry in entries:
            for line in entry.lines:
                if line.account == account_id:
                    balance += _amount(line.debit) - _amount(line.credit)
        return balance

    async def get_ledger(self, query: LedgerQuery) -> LedgerReport:
        """
        Lines of booked entries touching ``query.account``, in date and number
        order, each carrying the running balance (debit - credit).
        """
        if not query.account:
            raise ValueError("a ledger needs an account")
        account_id = query.account

        balance = Decimal("0")
        opening = None
        if query.include_opening and query.start_date:
            balance = await self.opening_balance(account_id, query.start_date, query.journal)
            opening = balance

        entries = await db.entries.find_booked_for_account(
            account_id, query.start_date, query.end_date, query.journal
        )

        lines: List[LedgerLine] = []
        total_debit = Decimal("0")
        total_credit = Decimal("0")
        for entry in entries:
            for line in entry.lines:
                if line.account != account_id:
                    continue
                debit, credit = _amount(line.debit), _amount(line.credit)
                total_debit += debit
                total_credit += credit
                balance += debit - credit
                lines.append(LedgerLine(
                    entry_id=entry.id,
                    entry_number=entry.number,
                    date=entry.date,
                    journal=entry.journal,
                    label=line.label,
                    reference=line.reference or entry.reference,
                    debit=float(debit),
                    credit=float(credit),
                    balance=float(balance)
                ))

        return LedgerReport(
            account=account_id,
            start_date=query.start_date,
            end_date=query.end_date,
            opening_balance=float(opening) if opening is not None else None,
            lines=lines,
            total_debit=float(total_debit),
            total_credit=float(total_credit),
            closing_balance=float(balance) if query.include_closing else None
        )

    async def account_totals(self, company_id: str, start: Optional[date] = None,
                             end: Optional[date] = None) -> Totals:
        """Debit and credit per account over booked entries, with the chart accounts found."""
        entries = await db.entries.find_booked(company_id, start, end)

        debits: Dict[str, Decimal] = defaultdict(Decimal)
        credits: Dict[str, Decimal] = defaultdict(Decimal)
        for entry in entries:
            for line in entry.lines:
                debits[line.account] += _amount(line.debit)
                credits[line.account] += _amount(line.credit)

        accounts = await db.accounts.get_many(set(debits) | set(credits))
        return debits, credits, accounts

    async def get_trial_balance(self, company_id: str, start: Optional[date] = None,
                                end: Optional[date] = None) -> TrialBalance:
        debits, credits, accounts = await self.account_totals(company_id, start, end)

        rows: List[TrialBalanceRow] = []
        for account_id in set(debits) | set(credits):
            account = accounts.get(account_id)
            code = account.code if account else None
            rows.append(TrialBalanceRow(
                account=account_id,
                code=code,
                label=account.label if account else None,
                account_class=account_class(code) if code else None,
                debit=float(debits[account_id]),
                credit=float(credits[account_id]),
                balance=float(debits[account_id] - credits[account_id])
            ))
        rows.sort(key=lambda row: (row.code or "", row.account))

        total_debit = sum(debits.values(), ZERO)
        total_credit = sum(credits.values(), ZERO)
        is_balanced = abs(total_debit - total_credit) <= BALANCE_TOLERANCE
        if not is_balanced:
            logger.error(
                f"Trial balance for {company_id} does not agree: DR {total_debit} != CR {total_credit}"
            )

        return TrialBalance(
            company_id=company_id,
            start_date=start,
            end_date=end,
            rows=rows,
            total_debit=float(total_debit),
            total_credit=float(total_credit),
            is_balanced=is_balanced
        )

    async def get_balance_sheet(self, company_id: str, query: BalanceSheetQuery) -> BalanceSheet:
        """
        Classes 1-5 as of ``query.date``. Classes 2, 3 and 5 are assets, class 4
        is an asset when its balance is on the debit side, everything else is a
        liability. The difference is the result not yet carried to class 1.
        """
        sheet = await self._balance_sheet_at(company_id, query.date, query.format)
        if query.comparative:
            sheet.comparative = await self._balance_sheet_at(company_id, query.comparative_date, query.format)
        return sheet

    async def _balance_sheet_at(self, company_id: str, at: date, format: str) -> BalanceSheet:
        totals = await self.account_totals(company_id, end=at)

        assets: List[StatementRow] = []
        liabilities: List[StatementRow] = []
        for account, debit, credit in _chart_balances(totals, is_balance_sheet_account):
            if account.account_class in ASSET_CLASSES or (account.account_class == 4 and debit > credit):
                assets.append(_statement_row(account, debit - credit, debit, credit))
            else:
                liabilities.append(_statement_row(account, credit - debit, debit, credit))

        total_assets = _total(assets)
        total_liabilities = _total(liabilities)
        if format in GROUPED_FORMATS:
            assets, liabilities = group_by_class(assets), group_by_class(liabilities)

        return BalanceSheet(
            company_id=company_id,
            date=at,
            format=format,
            assets=assets,
            liabilities=liabilities,
            total_assets=float(total_assets),
            total_liabilities=float(total_liabilities),
            difference=float(total_assets - total_liabilities)
        )

    async def get_income_statement(self, company_id: str, query: IncomeStatementQuery) -> IncomeStatement:
        """Classes 6-8 over the range; the comparison covers the same days one year earlier."""
        statement = await self._income_statement_over(
            company_id, query.start_date, query.end_date, query.format
        )
        if query.comparative:
            statement.comparative = await self._income_statement_over(
                company_id, year_earlier(query.start_date), year_earlier(query.end_date), query.format
            )
        return statement

    async def _income_statement_over(self, company_id: str, start: date, end: date,
                                     format: str) -> IncomeStatement:
        totals = await self.account_totals(company_id, start, end)

        expenses: List[StatementRow] = []
        revenues: List[StatementRow] = []
        for account, debit, credit in _chart_balances(totals, is_income_statement_account):
            # class 8 splits on the sign of its balance
            if account.account_class == 6 or (account.account_class == 8 and debit > credit):
                expenses.append(_statement_row(account, debit - credit, debit, credit))
            else:
                revenues.append(_statement_row(account, credit - debit, debit, credit))

        total_expenses = _total(expenses)
        total_revenues = _total(revenues)
        net_income = total_revenues - total_expenses
        profit_margin = ZERO
        if total_revenues > 0:
            profit_margin = (net_income / total_revenues * 100).quantize(Decimal("0.01"))
        if format in GROUPED_FORMATS:
            expenses, revenues = group_by_class(expenses), group_by_class(revenues)

        return IncomeStatement(
            company_id=company_id,
            start_date=start,
            end_date=end,
            format=format,
            expenses=expenses,
            revenues=revenues,
            total_expenses=float(total_expenses),
            total_revenues=float(total_revenues),
            net_income=float(net_income),
            profit_margin=float(profit_margin)
        )

ledger_service = LedgerService()
