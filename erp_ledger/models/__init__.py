from erp_ledger.models.base import MongoModel, PyObjectId, ObjectIdStr
from erp_ledger.models.accounting import (
    AccountingEntry, JournalLine, RelatedDocument, Account, FiscalYear, FiscalPeriod,
    Journal, EntryStatus, DocumentType, Currency, AccountType, BALANCE_TOLERANCE, period_of
)
from erp_ledger.models.audit import AuditEvent, Actor, ActionType
