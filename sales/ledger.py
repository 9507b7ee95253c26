from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List

from core.entities import Customer, EntryType, KhataEntry

ZERO = Decimal("0.00")


@dataclass
class PortfolioSummary:
    total_customers: int
    customers_with_due: int
    total_receivable: Decimal


@dataclass
class StatementRow:
    entry_id: str
    date: datetime
    type: str
    description: str
    credit: Decimal
    debit: Decimal
    balance: Decimal
    product_name: str | None = None
    condition: str | None = None


def compute_balances(entries: Iterable[KhataEntry]) -> Dict[str, Decimal]:
    """
    Net amount each customer owes: credits minus debits.

    Positive means the customer owes the shop. The fold is a plain sum, so the
    order of `entries` never changes the result.
    """
    balances: Dict[str, Decimal] = {}
    for entry in entries:
        current = balances.get(entry.customer_id, ZERO)
        if entry.type == EntryType.CREDIT:
            balances[entry.customer_id] = current + entry.amount
        else:
            balances[entry.customer_id] = current - entry.amount
    return balances


def compute_portfolio_summary(customers: Iterable[Customer], balances: Dict[str, Decimal]) -> PortfolioSummary:
    customers = list(customers)
    due = [customer for customer in customers if balances.get(customer.id, ZERO) > 0]
    # Credit surpluses are not netted against what others owe.
    receivable = sum((balance for balance in balances.values() if balance > 0), ZERO)
    return PortfolioSummary(
        total_customers=len(customers),
        customers_with_due=len(due),
        total_receivable=receivable,
    )


def customer_statement(entries: Iterable[KhataEntry], customer_id) -> List[StatementRow]:
    customer_id = str(customer_id)
    own_entries = sorted(
        (entry for entry in entries if entry.customer_id == customer_id),
        key=lambda entry: entry.date,
    )

    rows: List[StatementRow] = []
    running = ZERO
    for entry in own_entries:
        running += entry.signed_amount
        rows.append(
            StatementRow(
                entry_id=entry.id,
                date=entry.date,
                type=entry.type,
                description=entry.description,
                credit=entry.amount if entry.type == EntryType.CREDIT else ZERO,
                debit=entry.amount if entry.type == EntryType.DEBIT else ZERO,
                balance=running,
                product_name=entry.product_name,
                condition=entry.condition,
            )
        )
    return rows


def search_customers(customers: Iterable[Customer], term: str | None = None) -> List[Customer]:
    term = (term or "").strip().lower()
    if not term:
        return list(customers)
    return [customer for customer in customers if term in customer.name.lower()]
