import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock, patch

from erp_ledger.models.accounting import AccountingEntry, EntryStatus, FiscalYear, JournalLine, Journal

# Account ids of a small SYSCOHADA chart
CLIENTS = "65f0c0ffee0000000000a411"
SALES = "65f0c0ffee0000000000a701"
VAT_COLLECTED = "65f0c0ffee0000000000a443"
BANK = "65f0c0ffee0000000000a521"
ENTRY_ID = "65f0c0ffee00000000000e01"
USER_ID = "65f0c0ffee00000000000a01"
COMPANY_ID = "acme_corp"

TODAY = date(2024, 3, 20)

@pytest.fixture
def mock_db():
    """Every module that reads the shared Database sees the same mock."""
    mock = MagicMock()
    mock.entries = AsyncMock()
    mock.accounts = AsyncMock()
    mock.fiscal_years = AsyncMock()
    mock.audit = AsyncMock()
    # no fiscal year known: every period is open
    mock.fiscal_years.find_for_month = AsyncMock(return_value=None)
    mock.entries.last_sequence_in_period = AsyncMock(return_value=0)
    with patch("erp_ledger.services.posting.db", mock), \
         patch("erp_ledger.services.periods.db", mock), \
         patch("erp_ledger.services.ledger.db", mock), \
         patch("erp_ledger.api.entries.db", mock), \
         patch("erp_ledger.api.accounting.db", mock):
        yield mock

@pytest.fixture
def sale_payload():
    return {
        "date": "2024-03-15",
        "journal": "sales",
        "reference": "FAC-2024-0042",
        "description": "Vente de marchandises",
        "lines": [
            {"account": CLIENTS, "label": "Client Kone", "debit": 118000, "credit": 0},
            {"account": SALES, "label": "Ventes", "debit": 0, "credit": 100000},
            {"account": VAT_COLLECTED, "label": "TVA facturee", "debit": 0, "credit": 18000},
        ],
    }

def make_entry(status: EntryStatus = EntryStatus.DRAFT, **overrides) -> AccountingEntry:
    data = dict(
        id=ENTRY_ID,
        number="ECR-2024-03-00001",
        company_id=COMPANY_ID,
        journal=Journal.SALES,
        date=datetime(2024, 3, 15),
        period="2024-03",
        lines=[
            JournalLine(account=CLIENTS, label="Client Kone", debit=118000.0),
            JournalLine(account=SALES, label="Ventes", credit=100000.0),
            JournalLine(account=VAT_COLLECTED, label="TVA facturee", credit=18000.0),
        ],
        total_debit=118000.0,
        total_credit=118000.0,
        status=status,
    )
    data.update(overrides)
    return AccountingEntry(**data)

@pytest.fixture
def draft_entry():
    return make_entry()

@pytest.fixture
def fiscal_year_2024():
    fiscal_year = FiscalYear.for_calendar_year(COMPANY_ID, 2024)
    fiscal_year.id = "65f0c0ffee00000000000f24"
    return fiscal_year
