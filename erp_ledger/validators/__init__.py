from erp_ledger.validators.errors import ErrorCode, FieldError, ValidationResult, EntryValidationError
from erp_ledger.validators.entry import (
    NormalizedLine, NormalizedEntry, NormalizedEntryUpdate,
    validate_entry, validate_entry_update, validate_line, check_balance, entry_totals,
    MIN_LINES, MAX_ATTACHMENTS
)
from erp_ledger.validators.period import ClosePeriodRequest, validate_close_period
from erp_ledger.validators.queries import (
    LedgerQuery, SearchEntryQuery, BalanceSheetQuery, IncomeStatementQuery,
    validate_ledger_query, validate_search_entry, validate_balance_sheet_query,
    validate_income_statement_query, MAX_PAGE_SIZE
)
from erp_ledger.validators.account import AccountDraft, validate_account
