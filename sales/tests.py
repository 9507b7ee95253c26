from datetime import timedelta
from decimal import Decimal
from itertools import permutations

from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from core.entities import Customer, EntryType, KhataEntry
from core.exceptions import StoreWriteError
from core.repository import ShopRepository, get_repository
from core.store import MemoryStore
from inventory.services import add_product, apply_product_changes, delete_product, update_product
from sales.ledger import compute_balances, compute_portfolio_summary, customer_statement, search_customers
from sales.reports import profit_summary, sales_history
from sales.services import (
    add_customer,
    add_khata_entry,
    apply_customer_changes,
    build_sale_record,
    delete_customer,
    sell_cash,
    sell_on_credit,
    update_customer,
)

IPHONE = {
    "category": "Mobile",
    "brand": "Apple",
    "model": "iPhone 14",
    "purchase_price": Decimal("70000"),
    "selling_price": Decimal("85000"),
    "quantity": 2,
}


def _entry(customer_id, entry_type, amount, minutes=0):
    return KhataEntry(
        id=f"{customer_id}-{entry_type}-{amount}-{minutes}",
        customer_id=customer_id,
        type=entry_type,
        amount=Decimal(amount),
        description="manual",
        date=timezone.now() + timedelta(minutes=minutes),
    )


class SaleServiceTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.repository = ShopRepository(self.store)
        self.product = add_product(self.repository, IPHONE)
        self.customer = add_customer(self.repository, {"name": "  Ravi Kumar ", "phone": "9876543210"})

    def test_cash_sale_decrements_stock_and_records_profit(self):
        sale = sell_cash(self.repository, self.product.id)

        self.assertEqual(sale.profit, Decimal("15000.00"))
        self.assertEqual(sale.product.quantity, 1)
        self.assertEqual(self.repository.get_product(self.product.id).quantity, 1)
        self.assertEqual(self.repository.sales, [sale])

        stored = ShopRepository(self.store)
        self.assertEqual(stored.get_product(self.product.id).quantity, 1)
        self.assertEqual(stored.sales[0].profit, Decimal("15000.00"))

    def test_selling_last_unit_removes_product(self):
        sell_cash(self.repository, self.product.id)
        sell_cash(self.repository, self.product.id)

        self.assertIsNone(self.repository.get_product(self.product.id))
        self.assertEqual(len(self.repository.sales), 2)
        self.assertIsNone(sell_cash(self.repository, self.product.id))
        self.assertEqual(len(self.repository.sales), 2)

    def test_sales_are_appended(self):
        first = sell_cash(self.repository, self.product.id)
        second = sell_cash(self.repository, self.product.id)

        self.assertEqual(self.repository.sales, [first, second])

    def test_each_sale_is_a_single_store_write(self):
        writes = self.store.write_count
        sell_cash(self.repository, self.product.id)
        self.assertEqual(self.store.write_count, writes + 1)

        sell_on_credit(self.repository, self.product.id, self.customer.id)
        self.assertEqual(self.store.write_count, writes + 2)

    def test_credit_sale_records_sale_entry_and_stock_together(self):
        result = sell_on_credit(self.repository, self.product.id, self.customer.id, condition="  Box opened ")

        self.assertEqual(result.sale.profit, Decimal("15000.00"))
        self.assertEqual(result.entry.type, EntryType.CREDIT)
        self.assertEqual(result.entry.amount, Decimal("85000.00"))
        self.assertEqual(result.entry.customer_id, self.customer.id)
        self.assertEqual(result.entry.description, "Sold: Apple iPhone 14")
        self.assertEqual(result.entry.product_name, "Apple iPhone 14")
        self.assertEqual(result.entry.condition, "Box opened")
        self.assertEqual(result.entry.date, result.sale.date_sold)
        self.assertEqual(self.repository.get_product(self.product.id).quantity, 1)
        self.assertEqual(compute_balances(self.repository.khata_entries), {self.customer.id: Decimal("85000.00")})

    def test_credit_sale_without_condition_stores_none(self):
        result = sell_on_credit(self.repository, self.product.id, self.customer.id, condition="   ")

        self.assertIsNone(result.entry.condition)

    def test_credit_sale_with_missing_customer_changes_nothing(self):
        writes = self.store.write_count

        self.assertIsNone(sell_on_credit(self.repository, self.product.id, "missing-customer"))
        self.assertIsNone(sell_on_credit(self.repository, "missing-product", self.customer.id))

        self.assertEqual(self.store.write_count, writes)
        self.assertEqual(self.repository.get_product(self.product.id).quantity, 2)
        self.assertEqual(self.repository.sales, [])
        self.assertEqual(self.repository.khata_entries, [])

    def test_failed_write_leaves_state_unchanged(self):
        self.store.fail_writes = True

        with self.assertRaises(StoreWriteError):
            sell_on_credit(self.repository, self.product.id, self.customer.id)

        self.assertEqual(self.repository.get_product(self.product.id).quantity, 2)
        self.assertEqual(self.repository.sales, [])
        self.assertEqual(self.repository.khata_entries, [])
        self.assertEqual(ShopRepository(self.store).get_product(self.product.id).quantity, 2)

    def test_profit_survives_product_edit_and_delete(self):
        sell_cash(self.repository, self.product.id)
        product = self.repository.get_product(self.product.id)
        update_product(self.repository, apply_product_changes(product, {"selling_price": Decimal("60000")}))
        before_delete = profit_summary(self.repository.sales)["total_profit"]
        delete_product(self.repository, self.product.id)

        self.assertEqual(before_delete, Decimal("15000.00"))
        self.assertEqual(profit_summary(self.repository.sales)["total_profit"], Decimal("15000.00"))

    def test_build_sale_record_snapshots_one_unit(self):
        sold_at = timezone.now() - timedelta(days=2)

        sale = build_sale_record(self.product, sold_at=sold_at)

        self.assertEqual(sale.product.quantity, 1)
        self.assertEqual(sale.product.id, self.product.id)
        self.assertEqual(sale.date_sold, sold_at)


class CustomerServiceTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.repository = ShopRepository(self.store)
        self.customer = add_customer(self.repository, {"name": "Ravi"})

    def test_add_customer_prepends_and_strips_name(self):
        other = add_customer(self.repository, {"name": "  Sunita ", "phone": ""})

        self.assertEqual(other.name, "Sunita")
        self.assertIsNone(other.phone)
        self.assertEqual(self.repository.customers, [other, self.customer])

    def test_update_customer(self):
        updated = update_customer(self.repository, apply_customer_changes(self.customer, {"phone": "98765"}))

        self.assertEqual(updated.phone, "98765")
        self.assertEqual(ShopRepository(self.store).get_customer(self.customer.id).phone, "98765")

    def test_full_customer_change_clears_omitted_fields(self):
        customer = add_customer(self.repository, {"name": "Sunita", "phone": "98765", "photo": "data:image/png;base64,AAA"})

        replaced = apply_customer_changes(customer, {"name": " Sunita Devi "}, full=True)

        self.assertEqual(replaced.name, "Sunita Devi")
        self.assertIsNone(replaced.phone)
        self.assertIsNone(replaced.photo)
        self.assertEqual(apply_customer_changes(customer, {"name": "Sunita"}).phone, "98765")

    def test_update_missing_customer_is_a_noop(self):
        delete_customer(self.repository, self.customer.id)

        self.assertIsNone(update_customer(self.repository, self.customer))
        self.assertEqual(self.repository.customers, [])

    def test_add_khata_entry_prepends(self):
        first = add_khata_entry(self.repository, self.customer.id, EntryType.CREDIT, "500", "Screen guard")
        second = add_khata_entry(self.repository, self.customer.id, EntryType.DEBIT, Decimal("200"), "Cash paid")

        self.assertEqual(self.repository.khata_entries, [second, first])
        self.assertEqual(first.amount, Decimal("500.00"))
        self.assertIsNone(first.condition)
        self.assertEqual(compute_balances(self.repository.khata_entries)[self.customer.id], Decimal("300.00"))

    def test_add_khata_entry_validates_input(self):
        with self.assertRaises(ValueError):
            add_khata_entry(self.repository, self.customer.id, "refund", "10", "x")
        with self.assertRaises(ValueError):
            add_khata_entry(self.repository, self.customer.id, EntryType.CREDIT, "0", "x")
        with self.assertRaises(ValueError):
            add_khata_entry(self.repository, self.customer.id, EntryType.CREDIT, "10", "   ")
        self.assertEqual(self.repository.khata_entries, [])

    def test_add_khata_entry_for_missing_customer_is_a_noop(self):
        self.assertIsNone(add_khata_entry(self.repository, "ghost", EntryType.CREDIT, "10", "x"))
        self.assertEqual(self.repository.khata_entries, [])

    def test_delete_customer_cascades_to_entries(self):
        other = add_customer(self.repository, {"name": "Sunita"})
        add_khata_entry(self.repository, self.customer.id, EntryType.CREDIT, "500", "Charger")
        kept = add_khata_entry(self.repository, other.id, EntryType.CREDIT, "100", "Cover")
        writes = self.store.write_count

        self.assertTrue(delete_customer(self.repository, self.customer.id))

        self.assertEqual(self.store.write_count, writes + 1)
        self.assertEqual(self.repository.customers, [other])
        self.assertEqual(self.repository.khata_entries, [kept])
        self.assertFalse(delete_customer(self.repository, self.customer.id))


class LedgerTests(SimpleTestCase):
    def test_balance_is_independent_of_entry_order(self):
        entries = [
            _entry("c-1", EntryType.CREDIT, "500"),
            _entry("c-1", EntryType.DEBIT, "200", minutes=1),
            _entry("c-1", EntryType.CREDIT, "100", minutes=2),
        ]

        for ordering in permutations(entries):
            self.assertEqual(compute_balances(ordering), {"c-1": Decimal("400.00")})

    def test_portfolio_summary_ignores_credit_surplus(self):
        balances = compute_balances(
            [
                _entry("a", EntryType.CREDIT, "300"),
                _entry("b", EntryType.CREDIT, "50"),
                _entry("b", EntryType.DEBIT, "100"),
                _entry("c", EntryType.CREDIT, "70"),
                _entry("c", EntryType.DEBIT, "70"),
            ]
        )
        customers = [Customer(id=customer_id, name=customer_id.upper()) for customer_id in "abc"]

        summary = compute_portfolio_summary(customers, balances)

        self.assertEqual(summary.total_customers, 3)
        self.assertEqual(summary.customers_with_due, 1)
        self.assertEqual(summary.total_receivable, Decimal("300.00"))

    def test_customer_statement_runs_oldest_first(self):
        entries = [
            _entry("c-1", EntryType.CREDIT, "100", minutes=2),
            _entry("c-2", EntryType.CREDIT, "999", minutes=1),
            _entry("c-1", EntryType.DEBIT, "200", minutes=1),
            _entry("c-1", EntryType.CREDIT, "500"),
        ]

        rows = customer_statement(entries, "c-1")

        self.assertEqual([row.balance for row in rows], [Decimal("500"), Decimal("300"), Decimal("400")])
        self.assertEqual([row.credit for row in rows], [Decimal("500"), Decimal("0"), Decimal("100")])
        self.assertEqual(rows[1].debit, Decimal("200"))

    def test_search_customers_by_name(self):
        repository = ShopRepository(MemoryStore())
        ravi = add_customer(repository, {"name": "Ravi Kumar"})
        add_customer(repository, {"name": "Sunita"})

        self.assertEqual(search_customers(repository.customers, "KUMAR"), [ravi])
        self.assertEqual(len(search_customers(repository.customers, "")), 2)


class ReportTests(SimpleTestCase):
    def setUp(self):
        self.repository = ShopRepository(MemoryStore())
        self.product = add_product(self.repository, dict(IPHONE, quantity=5))

    def test_profit_summary_totals(self):
        sell_cash(self.repository, self.product.id)
        sell_cash(self.repository, self.product.id)

        summary = profit_summary(self.repository.sales)

        self.assertEqual(summary["units_sold"], 2)
        self.assertEqual(summary["total_revenue"], Decimal("170000.00"))
        self.assertEqual(summary["total_cost"], Decimal("140000.00"))
        self.assertEqual(summary["total_profit"], Decimal("30000.00"))

    def test_empty_profit_summary(self):
        summary = profit_summary([])

        self.assertEqual(summary["units_sold"], 0)
        self.assertEqual(summary["total_profit"], Decimal("0.00"))

    def test_sales_history_is_newest_first_within_window(self):
        now = timezone.now()
        old = build_sale_record(self.product, sold_at=now - timedelta(days=10))
        recent = build_sale_record(self.product, sold_at=now - timedelta(days=1))
        latest = build_sale_record(self.product, sold_at=now)

        self.assertEqual(sales_history([old, recent, latest]), [latest, recent, old])
        self.assertEqual(sales_history([old, recent, latest], now - timedelta(days=2), now - timedelta(hours=1)), [recent])
        self.assertEqual(profit_summary([old, recent, latest], now - timedelta(days=2))["units_sold"], 2)


class ShopScenarioTests(SimpleTestCase):
    def test_credit_sale_walkthrough(self):
        store = MemoryStore()
        repository = ShopRepository(store)
        product = add_product(repository, IPHONE)
        ravi = add_customer(repository, {"name": "Ravi"})

        sell_on_credit(repository, product.id, ravi.id)

        repository = ShopRepository(store)
        self.assertEqual(repository.get_product(product.id).quantity, 1)
        self.assertEqual(profit_summary(repository.sales)["total_profit"], Decimal("15000.00"))
        self.assertEqual(len(repository.khata_entries), 1)
        self.assertEqual(repository.khata_entries[0].amount, Decimal("85000.00"))
        self.assertEqual(compute_balances(repository.khata_entries)[ravi.id], Decimal("85000.00"))

        add_khata_entry(repository, ravi.id, EntryType.DEBIT, "20000", "Part payment")
        summary = compute_portfolio_summary(repository.customers, compute_balances(repository.khata_entries))
        self.assertEqual(summary.total_receivable, Decimal("65000.00"))


class SalesApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.product = self.client.post(
            "/api/v1/products/",
            {
                "category": "Mobile",
                "brand": "Apple",
                "model": "iPhone 14",
                "purchase_price": "70000",
                "selling_price": "85000",
                "quantity": 2,
            },
            format="json",
        ).json()
        self.customer = self.client.post("/api/v1/customers/", {"name": "Ravi", "phone": "98765"}, format="json").json()

    def test_cash_sale(self):
        response = self.client.post("/api/v1/sales/", {"product_id": self.product["id"]}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["profit"], "15000.00")
        self.assertEqual(response.json()["product"]["quantity"], 1)
        self.assertEqual(get_repository().get_product(self.product["id"]).quantity, 1)

        listing = self.client.get("/api/v1/sales/")
        self.assertEqual(listing.json()["count"], 1)

    def test_cash_sale_of_missing_product(self):
        response = self.client.post("/api/v1/sales/", {"product_id": "gone"}, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "not_found")
        self.assertEqual(get_repository().sales, [])

    def test_credit_sale_and_statement(self):
        response = self.client.post(
            "/api/v1/sales/credit/",
            {"product_id": self.product["id"], "customer_id": self.customer["id"], "condition": "Sealed"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["sale"]["profit"], "15000.00")
        self.assertEqual(payload["entry"]["type"], "credit")
        self.assertEqual(payload["entry"]["amount"], "85000.00")
        self.assertEqual(payload["entry"]["condition"], "Sealed")

        statement = self.client.get(f"/api/v1/customers/{self.customer['id']}/entries/")
        self.assertEqual(statement.status_code, 200)
        self.assertEqual(statement.json()["balance"], "85000.00")
        self.assertEqual(statement.json()["customer"]["balance"], "85000.00")
        self.assertEqual(statement.json()["entries"][0]["product_name"], "Apple iPhone 14")

    def test_credit_sale_to_missing_customer_changes_nothing(self):
        response = self.client.post(
            "/api/v1/sales/credit/",
            {"product_id": self.product["id"], "customer_id": "ghost"},
            format="json",
        )

        self.assertEqual(response.status_code, 404)
        repository = get_repository()
        self.assertEqual(repository.get_product(self.product["id"]).quantity, 2)
        self.assertEqual(repository.sales, [])
        self.assertEqual(repository.khata_entries, [])

    def test_manual_entry_and_customer_balance(self):
        url = f"/api/v1/customers/{self.customer['id']}/entries/"
        self.client.post(url, {"type": "credit", "amount": "500", "description": "Cover"}, format="json")
        response = self.client.post(url, {"type": "debit", "amount": "200", "description": "Cash"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["amount"], "200.00")

        detail = self.client.get(f"/api/v1/customers/{self.customer['id']}/")
        self.assertEqual(detail.json()["balance"], "300.00")

        summary = self.client.get("/api/v1/khata/summary/").json()
        self.assertEqual(summary["customers_with_due"], 1)
        self.assertEqual(summary["total_receivable"], "300.00")
        self.assertEqual(summary["total_receivable_display"], "₹300")

    def test_manual_entry_rejects_bad_input(self):
        response = self.client.post(
            f"/api/v1/customers/{self.customer['id']}/entries/",
            {"type": "refund", "amount": "0", "description": ""},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("type", errors)
        self.assertIn("amount", errors)
        self.assertIn("description", errors)

    def test_delete_customer_removes_entries(self):
        self.client.post(
            "/api/v1/sales/credit/",
            {"product_id": self.product["id"], "customer_id": self.customer["id"]},
            format="json",
        )

        response = self.client.delete(f"/api/v1/customers/{self.customer['id']}/")

        self.assertEqual(response.status_code, 204)
        repository = get_repository()
        self.assertEqual(repository.customers, [])
        self.assertEqual(repository.khata_entries, [])
        self.assertEqual(len(repository.sales), 1)

    def test_customer_search_and_update(self):
        self.client.post("/api/v1/customers/", {"name": "Sunita"}, format="json")

        listing = self.client.get("/api/v1/customers/", {"search": "sun"})
        self.assertEqual(listing.json()["count"], 1)

        response = self.client.patch(f"/api/v1/customers/{self.customer['id']}/", {"phone": "11111"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["phone"], "11111")
        self.assertEqual(response.json()["name"], "Ravi")

    def test_profit_summary_endpoint(self):
        self.client.post("/api/v1/sales/", {"product_id": self.product["id"]}, format="json")

        response = self.client.get("/api/v1/sales/summary/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_profit"], "15000.00")
        self.assertEqual(response.json()["display"]["total_profit"], "₹15,000")

    def test_half_open_date_window_is_rejected(self):
        response = self.client.get("/api/v1/sales/", {"date_from": "2024-01-01"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("date_range", response.json()["errors"])

    def test_impossible_or_unparseable_dates_are_rejected(self):
        for url in ("/api/v1/sales/", "/api/v1/sales/summary/"):
            for date_from, date_to in (("2024-02-30", "2024-03-01"), ("garbage", "garbage")):
                response = self.client.get(url, {"date_from": date_from, "date_to": date_to})

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["code"], "validation_error")
                self.assertIn("date_from", response.json()["errors"])

    def test_unknown_timezone_is_rejected(self):
        response = self.client.get(
            "/api/v1/sales/summary/",
            {"date_from": "2024-01-01", "date_to": "2024-01-31", "timezone": "Mars/Olympus"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("timezone", response.json()["errors"])

    def test_date_window_filters_sales(self):
        self.client.post("/api/v1/sales/", {"product_id": self.product["id"]}, format="json")
        today = timezone.localdate().isoformat()

        inside = self.client.get("/api/v1/sales/", {"date_from": today, "date_to": today})
        outside = self.client.get("/api/v1/sales/summary/", {"date_from": "2020-01-01", "date_to": "2020-01-31"})

        self.assertEqual(inside.json()["count"], 1)
        self.assertEqual(outside.json()["units_sold"], 0)

    def test_customer_put_clears_omitted_phone(self):
        response = self.client.put(f"/api/v1/customers/{self.customer['id']}/", {"name": "Ravi Kumar"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Ravi Kumar")
        self.assertIsNone(response.json()["phone"])
        self.assertIsNone(get_repository().get_customer(self.customer["id"]).phone)
