"""Selling stock and keeping the customer khata.

Every operation reads the repository, builds the complete new state of each
collection it touches, and hands all of them to ``repository.write`` at once.
Nothing is visible to other readers until that single write succeeds.

Lookups that miss (a product sold from another tab, a customer deleted
meanwhile) are no-ops: the functions return ``None``/``False`` and log a
warning, leaving the caller to decide whether that is an error.
"""

import logging
import uuid
from dataclasses import replace

from django.utils import timezone

from common.utils import to_money
from core.entities import CreditSale, Customer, EntryType, KhataEntry, SaleRecord
from inventory.services import decrement_stock

logger = logging.getLogger(__name__)


def build_sale_record(product, sold_at=None):
    snapshot = product.with_quantity(1)
    return SaleRecord(
        id=str(uuid.uuid4()),
        product=snapshot,
        date_sold=sold_at or timezone.now(),
        profit=snapshot.selling_price - snapshot.purchase_price,
    )


def sell_cash(repository, product_id):
    product = repository.get_product(product_id)
    if product is None:
        logger.warning("cash_sale_skipped product_missing", extra={"product_id": str(product_id)})
        return None

    sale = build_sale_record(product)
    repository.write(
        products=decrement_stock(repository.products, product),
        sales=repository.sales + [sale],
    )
    logger.info("sale_recorded", extra={"sale_id": sale.id, "product_id": product.id})
    return sale


def sell_on_credit(repository, product_id, customer_id, condition=""):
    product = repository.get_product(product_id)
    customer = repository.get_customer(customer_id)
    if product is None or customer is None:
        logger.warning(
            "credit_sale_skipped product_found=%s customer_found=%s",
            product is not None,
            customer is not None,
            extra={"product_id": str(product_id), "customer_id": str(customer_id)},
        )
        return None

    # Sale, ledger entry and stock change are all derived from the same pre-sale product.
    sale = build_sale_record(product)
    entry = KhataEntry(
        id=str(uuid.uuid4()),
        customer_id=customer.id,
        type=EntryType.CREDIT,
        amount=product.selling_price,
        description=f"Sold: {product.display_name}",
        date=sale.date_sold,
        product_name=product.display_name,
        condition=(condition or "").strip() or None,
    )
    repository.write(
        products=decrement_stock(repository.products, product),
        sales=repository.sales + [sale],
        khata_entries=[entry] + repository.khata_entries,
    )
    logger.info(
        "credit_sale_recorded",
        extra={"sale_id": sale.id, "entry_id": entry.id, "product_id": product.id, "customer_id": customer.id},
    )
    return CreditSale(sale=sale, entry=entry)


def add_customer(repository, data):
    customer = Customer(
        id=str(uuid.uuid4()),
        name=data["name"].strip(),
        phone=data.get("phone") or None,
        photo=data.get("photo") or None,
    )
    repository.write(customers=[customer] + repository.customers)
    logger.info("customer_added", extra={"customer_id": customer.id})
    return customer


def update_customer(repository, customer):
    if repository.get_customer(customer.id) is None:
        logger.warning("customer_update_missed", extra={"customer_id": customer.id})
        return None
    repository.write(customers=[customer if item.id == customer.id else item for item in repository.customers])
    logger.info("customer_updated", extra={"customer_id": customer.id})
    return customer


OPTIONAL_CUSTOMER_FIELDS = ("phone", "photo")


def apply_customer_changes(customer, changes, *, full=False):
    changes = {name: value for name, value in changes.items() if name != "id"}
    if full:
        for name in OPTIONAL_CUSTOMER_FIELDS:
            changes.setdefault(name, None)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    for name in OPTIONAL_CUSTOMER_FIELDS:
        if name in changes:
            changes[name] = changes[name] or None
    return replace(customer, **changes)


def delete_customer(repository, customer_id):
    entry_count = len(repository.entries_for_customer(customer_id))
    if not repository.remove_customer(customer_id):
        return False
    logger.info("customer_deleted entries_removed=%s", entry_count, extra={"customer_id": str(customer_id)})
    return True


def add_khata_entry(repository, customer_id, entry_type, amount, description, condition="", product_name=None):
    if entry_type not in EntryType.values:
        raise ValueError(f"Unknown khata entry type: {entry_type!r}")
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError("Khata entry amount must be greater than zero.")
    if not (description or "").strip():
        raise ValueError("Khata entry description is required.")

    customer = repository.get_customer(customer_id)
    if customer is None:
        logger.warning("khata_entry_skipped customer_missing", extra={"customer_id": str(customer_id)})
        return None

    entry = KhataEntry(
        id=str(uuid.uuid4()),
        customer_id=customer.id,
        type=entry_type,
        amount=amount,
        description=description.strip(),
        date=timezone.now(),
        product_name=product_name or None,
        condition=(condition or "").strip() or None,
    )
    repository.write(khata_entries=[entry] + repository.khata_entries)
    logger.info("khata_entry_added type=%s", entry_type, extra={"entry_id": entry.id, "customer_id": customer.id})
    return entry
