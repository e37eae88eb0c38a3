"""
SYSCOHADA chart-of-accounts helpers.

The first digit of an account code is its class:
1-5 are balance-sheet classes, 6-8 income-statement classes.
"""
from decimal import Decimal
from typing import Any, Dict, Optional, Union

SYSCOHADA_CLASSES: Dict[int, Dict[str, str]] = {
    1: {
        "name": "Long-term resources",
        "description": "Capital, borrowings and similar debts",
        "type": "liability",
    },
    2: {
        "name": "Fixed assets",
        "description": "Intangible, tangible and financial fixed assets",
        "type": "asset",
    },
    3: {
        "name": "Inventories",
        "description": "Goods, raw materials, products",
        "type": "asset",
    },
    4: {
        "name": "Third parties",
        "description": "Suppliers, customers, staff, social and tax bodies",
        "type": "mixed",
    },
    5: {
        "name": "Treasury",
        "description": "Banks, financial institutions, cash",
        "type": "asset",
    },
    6: {
        "name": "Expenses",
        "description": "Operating, financial and exceptional expenses",
        "type": "expense",
    },
    7: {
        "name": "Revenues",
        "description": "Sales, production, financial income",
        "type": "revenue",
    },
    8: {
        "name": "Other expenses and revenues",
        "description": "Disposals, allowances, reversals, income tax",
        "type": "mixed",
    },
}

BALANCE_SHEET_CLASSES = {1, 2, 3, 4, 5}
INCOME_STATEMENT_CLASSES = {6, 7, 8}

def account_class(code: str) -> Optional[int]:
    """Class digit of an account code, or None when the code is not SYSCOHADA."""
    if not code or not code[0].isdigit():
        return None
    value = int(code[0])
    return value if value in SYSCOHADA_CLASSES else None

def class_info(code: str) -> Optional[Dict[str, Any]]:
    number = account_class(code)
    if number is None:
        return None
    return {"class": number, **SYSCOHADA_CLASSES[number]}

def natural_balance(code: str) -> str:
    """Side ('debit' or 'credit') on which the account normally carries its balance."""
    number = account_class(code)
    if number in (1, 7):
        return "credit"
    sub_class = code[:2]
    # suppliers, social bodies, state, non-operating payables
    if number == 4 and sub_class in ("40", "43", "44", "48"):
        return "credit"
    # even sub-classes of class 8 are income
    if number == 8 and sub_class in ("82", "84", "86", "88"):
        return "credit"
    return "debit"

def is_balance_sheet_account(code: str) -> bool:
    return account_class(code) in BALANCE_SHEET_CLASSES

def is_income_statement_account(code: str) -> bool:
    return account_class(code) in INCOME_STATEMENT_CLASSES

def signed_balance(code: str, debit: Union[Decimal, float], credit: Union[Decimal, float]) -> Union[Decimal, float]:
    """Balance expressed on the account's natural side (positive when normal)."""
    if natural_balance(code) == "credit":
        return credit - debit
    return debit - credit
