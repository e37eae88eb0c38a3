from calendar import monthrange, month_name
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from erp_ledger.models.base import MongoModel, ObjectIdStr

# Absolute debit/credit drift absorbed when checking balance (XOF has no minor unit)
BALANCE_TOLERANCE = Decimal("0.01")

class Journal(str, Enum):
    SALES = "sales"
    PURCHASES = "purchases"
    CASH = "cash"
    BANK = "bank"
    OPERATIONS = "operations"
    MISCELLANEOUS = "miscellaneous"

class EntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VALIDATED = "validated"
    CANCELLED = "cancelled"

class DocumentType(str, Enum):
    INVOICE = "invoice"
    PAYMENT = "payment"
    RECEIPT = "receipt"
    PURCHASE_ORDER = "purchase_order"
    OTHER = "other"

class Currency(str, Enum):
    XOF = "XOF"
    XAF = "XAF"
    EUR = "EUR"
    USD = "USD"

class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

def period_of(day: date) -> str:
    """YYYY-MM period key of a date."""
    return f"{day.year:04d}-{day.month:02d}"

class RelatedDocument(BaseModel):
    """Business document an entry was generated from."""
    type: DocumentType
    id: ObjectIdStr

class JournalLine(BaseModel):
    account: str
    label: str
    debit: float = 0.0
    credit: float = 0.0
    reference: Optional[str] = None

class AccountingEntry(MongoModel):
    """Double-entry bookkeeping record."""
    number: str = Field(..., description="ECR-YYYY-MM-NNNNN, unique per company")
    sequence: Optional[int] = Field(None, description="Position of the entry in its period; numbers are sorted on it")
    company_id: str
    journal: Journal
    date: datetime
    period: str
    reference: Optional[str] = None
    description: Optional[str] = None
    currency: Currency = Currency.XOF

    lines: List[JournalLine]

    total_debit: float
    total_credit: float

    related_document: Optional[RelatedDocument] = None
    attachments: List[str] = Field(default_factory=list)

    status: EntryStatus = EntryStatus.DRAFT
    created_by: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def is_balanced(self) -> bool:
        difference = Decimal(str(self.total_debit)) - Decimal(str(self.total_credit))
        return abs(difference) <= BALANCE_TOLERANCE

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "number": "ECR-2024-03-00001",
            "sequence": 1,
            "company_id": "65f0c0ffee0000000000abcd",
            "journal": "sales",
            "date": "2024-03-15T00:00:00",
            "period": "2024-03",
            "lines": [
                {"account": "65f0c0ffee0000000000a411", "label": "Client Kone", "debit": 118000, "credit": 0},
                {"account": "65f0c0ffee0000000000a701", "label": "Ventes", "debit": 0, "credit": 100000},
                {"account": "65f0c0ffee0000000000a443", "label": "TVA facturee", "debit": 0, "credit": 18000}
            ],
            "total_debit": 118000,
            "total_credit": 118000,
            "status": "draft"
        }
    })

class Account(MongoModel):
    """Chart-of-accounts entry (SYSCOHADA plan)."""
    company_id: str
    code: str
    label: str
    type: AccountType
    account_class: int = Field(..., ge=1, le=8)
    parent: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    is_system: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

class FiscalPeriod(BaseModel):
    month: int = Field(..., ge=1, le=12)
    name: str
    start_date: datetime
    end_date: datetime
    is_closed: bool = False
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    notes: Optional[str] = None

class FiscalYear(MongoModel):
    """Accounting year split into twelve monthly periods."""
    company_id: str
    year: int
    start_date: datetime
    end_date: datetime
    status: str = "open" # open, closed
    periods: List[FiscalPeriod] = Field(default_factory=list)

    @classmethod
    def for_calendar_year(cls, company_id: str, year: int) -> "FiscalYear":
        periods = []
        for month in range(1, 13):
            last_day = monthrange(year, month)[1]
            periods.append(FiscalPeriod(
                month=month,
                name=f"{month_name[month]} {year}",
                start_date=datetime(year, month, 1),
                end_date=datetime(year, month, last_day, 23, 59, 59)
            ))
        return cls(
            company_id=company_id,
            year=year,
            start_date=datetime(year, 1, 1),
            end_date=datetime(year, 12, 31, 23, 59, 59),
            periods=periods
        )

    def get_period(self, month: int) -> Optional[FiscalPeriod]:
        return next((p for p in self.periods if p.month == month), None)

    def is_month_closed(self, month: int) -> bool:
        period = self.get_period(month)
        return bool(period and period.is_closed)
