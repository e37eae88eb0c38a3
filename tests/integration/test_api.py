import pytest
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock
from pymongo.errors import DuplicateKeyError

from erp_ledger.main import app
from erp_ledger.models.accounting import Account, AccountType, EntryStatus
from erp_ledger.models.audit import ActionType, Actor, AuditEvent
from conftest import CLIENTS, COMPANY_ID, ENTRY_ID, SALES, USER_ID, make_entry

HEADERS = {"X-Company-Id": COMPANY_ID, "X-User-Id": USER_ID}

def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

@pytest.mark.asyncio
async def test_health_check():
    async with client() as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

@pytest.mark.asyncio
async def test_company_header_is_required(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/entries")
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_create_entry(mock_db, sale_payload):
    async with client() as ac:
        response = await ac.post("/api/accounting/entries", json=sale_payload, headers=HEADERS)

    assert response.status_code == 201
    body = response.json()
    assert body["number"] == "ECR-2024-03-00001"
    assert body["status"] == "draft"
    assert body["total_debit"] == 118000.0
    mock_db.entries.create.assert_called_once()

@pytest.mark.asyncio
async def test_create_entry_lists_every_error(mock_db):
    payload = {
        "journal": "payroll",
        "lines": [{"account": CLIENTS, "label": "Seule ligne", "debit": 100, "credit": 100}],
    }
    async with client() as ac:
        response = await ac.post("/api/accounting/entries", json=payload, headers=HEADERS)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    found = {(error["field"], error["code"]) for error in body["errors"]}
    assert found == {
        ("journal", "INVALID_ENUM_VALUE"),
        ("lines", "TOO_FEW_LINES"),
        ("lines[0]", "DEBIT_AND_CREDIT"),
    }
    assert all({"field", "code", "message", "context"} <= set(error) for error in body["errors"])
    mock_db.entries.create.assert_not_called()

@pytest.mark.asyncio
async def test_search_entries(mock_db):
    mock_db.entries.search = AsyncMock(return_value=([make_entry()], 1))

    async with client() as ac:
        response = await ac.get("/api/accounting/entries?journal=sales&limit=5", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "pages": 1}
    assert body["data"][0]["number"] == "ECR-2024-03-00001"
    query = mock_db.entries.search.call_args.args[1]
    assert query.limit == 5

@pytest.mark.asyncio
async def test_search_rejects_oversized_page(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/entries?limit=500", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "limit"
    assert response.json()["errors"][0]["code"] == "OUT_OF_RANGE"

@pytest.mark.asyncio
async def test_entry_of_another_company_is_hidden(mock_db):
    mock_db.entries.get = AsyncMock(return_value=make_entry(company_id="other_corp"))

    async with client() as ac:
        response = await ac.get(f"/api/accounting/entries/{ENTRY_ID}", headers=HEADERS)
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_invalid_transition_is_a_bad_request(mock_db):
    mock_db.entries.get = AsyncMock(return_value=make_entry(EntryStatus.VALIDATED))

    async with client() as ac:
        response = await ac.post(f"/api/accounting/entries/{ENTRY_ID}/post", headers=HEADERS)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Only draft entries can be posted"}

@pytest.mark.asyncio
async def test_post_entry(mock_db):
    mock_db.entries.get = AsyncMock(return_value=make_entry())
    mock_db.entries.update = AsyncMock(return_value=make_entry(EntryStatus.POSTED))

    async with client() as ac:
        response = await ac.post(f"/api/accounting/entries/{ENTRY_ID}/post", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["status"] == "posted"

@pytest.mark.asyncio
async def test_ledger_requires_an_account(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/ledger?start_date=2024-01-01", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "account"
    assert response.json()["errors"][0]["code"] == "MISSING_REQUIRED_FIELD"

@pytest.mark.asyncio
async def test_close_period_rejects_month_thirteen(mock_db):
    async with client() as ac:
        response = await ac.post("/api/accounting/periods/close", json={"period": "2024-13"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "period"
    assert response.json()["errors"][0]["code"] == "INVALID_FORMAT"

@pytest.mark.asyncio
async def test_create_account_rejects_class_mismatch(mock_db):
    payload = {"code": "701", "label": "Ventes", "type": "revenue", "class": 6}
    async with client() as ac:
        response = await ac.post("/api/accounting/accounts", json=payload, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "account_class"

@pytest.mark.asyncio
async def test_create_account(mock_db):
    mock_db.accounts.get_by_code = AsyncMock(return_value=None)
    payload = {"code": "5211", "label": "Banque Atlantique", "type": "asset"}

    async with client() as ac:
        response = await ac.post("/api/accounting/accounts", json=payload, headers=HEADERS)

    assert response.status_code == 201
    assert response.json()["account_class"] == 5
    mock_db.accounts.create.assert_called_once()

@pytest.mark.asyncio
async def test_create_entry_number_conflict_is_409(mock_db, sale_payload):
    mock_db.entries.create = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key"))

    async with client() as ac:
        response = await ac.post("/api/accounting/entries", json=sale_payload, headers=HEADERS)

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert "entry number" in response.json()["error"]

@pytest.mark.asyncio
async def test_search_entries_by_period(mock_db):
    mock_db.entries.search = AsyncMock(return_value=([make_entry()], 1))

    async with client() as ac:
        response = await ac.get("/api/accounting/entries?period=2024-03", headers=HEADERS)

    assert response.status_code == 200
    query = mock_db.entries.search.call_args.args[1]
    assert query.period == "2024-03"

@pytest.mark.asyncio
async def test_search_rejects_a_bad_period(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/entries?period=2024-13", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "period"
    mock_db.entries.search.assert_not_called()

@pytest.mark.asyncio
async def test_entry_history(mock_db):
    mock_db.entries.get = AsyncMock(return_value=make_entry())
    mock_db.audit.get_for_entity = AsyncMock(return_value=[
        AuditEvent(event_id="EVT-1", company_id=COMPANY_ID, entity="ECR-2024-03-00001",
                   actor=Actor(id=USER_ID), action_type=ActionType.ENTRY_CREATED,
                   details="Entry ECR-2024-03-00001 created in journal sales"),
        AuditEvent(event_id="EVT-2", company_id=COMPANY_ID, entity="ECR-2024-03-00001",
                   actor=Actor(id=USER_ID), action_type=ActionType.ENTRY_POSTED,
                   details="Entry ECR-2024-03-00001: draft -> posted"),
    ])

    async with client() as ac:
        response = await ac.get(f"/api/accounting/entries/{ENTRY_ID}/history", headers=HEADERS)

    assert response.status_code == 200
    actions = [event["action_type"] for event in response.json()["data"]]
    assert actions == ["ENTRY_CREATED", "ENTRY_POSTED"]
    mock_db.audit.get_for_entity.assert_called_once_with(COMPANY_ID, "ECR-2024-03-00001")

@pytest.mark.asyncio
async def test_history_of_another_company_entry_is_hidden(mock_db):
    mock_db.entries.get = AsyncMock(return_value=make_entry(company_id="other_corp"))

    async with client() as ac:
        response = await ac.get(f"/api/accounting/entries/{ENTRY_ID}/history", headers=HEADERS)

    assert response.status_code == 404
    mock_db.audit.get_for_entity.assert_not_called()

def sales_chart():
    return {
        CLIENTS: Account(id=CLIENTS, company_id=COMPANY_ID, code="411", label="Clients",
                         type=AccountType.ASSET, account_class=4),
        SALES: Account(id=SALES, company_id=COMPANY_ID, code="701", label="Ventes",
                       type=AccountType.REVENUE, account_class=7),
    }

@pytest.mark.asyncio
async def test_balance_sheet(mock_db):
    mock_db.entries.find_booked = AsyncMock(return_value=[make_entry(EntryStatus.POSTED)])
    mock_db.accounts.get_many = AsyncMock(return_value=sales_chart())

    async with client() as ac:
        response = await ac.get("/api/accounting/balance-sheet?date=2024-03-31", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2024-03-31"
    assert [row["code"] for row in body["assets"]] == ["411"]
    assert body["total_assets"] == 118000.0
    assert body["comparative"] is None

@pytest.mark.asyncio
async def test_balance_sheet_comparative_needs_a_date(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/balance-sheet?comparative=true", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "comparative_date"
    mock_db.entries.find_booked.assert_not_called()

@pytest.mark.asyncio
async def test_income_statement(mock_db):
    mock_db.entries.find_booked = AsyncMock(return_value=[make_entry(EntryStatus.VALIDATED)])
    mock_db.accounts.get_many = AsyncMock(return_value=sales_chart())

    async with client() as ac:
        response = await ac.get(
            "/api/accounting/income-statement?start_date=2024-01-01&end_date=2024-03-31&format=function",
            headers=HEADERS
        )

    assert response.status_code == 200
    body = response.json()
    assert body["revenues"] == [{
        "account": None, "code": "7", "label": "Revenues", "account_class": 7,
        "amount": 100000.0, "balance": 100000.0,
    }]
    assert body["net_income"] == 100000.0
    assert body["profit_margin"] == 100.0

@pytest.mark.asyncio
async def test_income_statement_requires_dates(mock_db):
    async with client() as ac:
        response = await ac.get("/api/accounting/income-statement?start_date=2024-01-01", headers=HEADERS)

    assert response.status_code == 400
    assert {error["field"] for error in response.json()["errors"]} == {"end_date"}
