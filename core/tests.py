import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from common.logging import JsonFormatter
from common.utils import format_currency
from core.entities import AppSettings, Customer, KhataEntry, Product
from core.exceptions import EntityDecodeError, StoreReadError, StoreWriteError
from core.models import StoredValue
from core.repository import ShopRepository, get_repository
from core.services import backup_filename, export_backup, reset_all, update_settings
from core.store import ALL_KEYS, PIN_KEY, DatabaseStore, KeyValueStore, MemoryStore

LEGACY_DOCUMENTS = {
    "stock": [
        {
            "id": "p-1",
            "category": "Mobile",
            "brand": "Apple",
            "model": "iPhone 14",
            "purchasePrice": 70000,
            "sellingPrice": 85000,
            "dateAdded": "2024-03-01T10:15:00.000Z",
            "quantity": 2,
        }
    ],
    "sales": [],
    "customers": [{"id": "c-1", "name": "Ravi", "phone": "9876543210"}],
    "khataEntries": [
        {
            "id": "k-1",
            "customerId": "c-1",
            "type": "credit",
            "amount": 500.5,
            "description": "Opening balance",
            "date": "2024-03-02T08:00:00.000Z",
        }
    ],
    "app-settings": {"ownerName": "Vishwakarma", "ownerEmail": "", "ownerPhone": "", "creditLabel": "Udhaar", "debitLabel": "Jama"},
    "app-pin": "1234",
}


class MemoryStoreTests(SimpleTestCase):
    def test_load_returns_copy_of_default_for_missing_key(self):
        store = MemoryStore()
        default = []

        loaded = store.load("stock", default=default)
        loaded.append("x")

        self.assertEqual(default, [])
        self.assertEqual(store.load("stock", default=[]), [])

    def test_failed_write_leaves_data_untouched(self):
        store = MemoryStore({"customers": [{"id": "c-1", "name": "Ravi"}]})
        store.fail_writes = True

        self.assertFalse(store.save_many({"customers": [], "khataEntries": []}))
        self.assertEqual(store.load("customers"), [{"id": "c-1", "name": "Ravi"}])
        self.assertEqual(store.write_count, 0)

    def test_store_must_implement_every_operation(self):
        class ReadOnlyStore(KeyValueStore):
            def load(self, key, default=None):
                return default

        with self.assertRaises(TypeError):
            ReadOnlyStore()


class DatabaseStoreTests(TestCase):
    def test_save_many_and_remove_round_trip_through_rows(self):
        store = DatabaseStore()

        self.assertTrue(store.save_many({"stock": [{"id": "p-1"}], "app-pin": "9999"}))
        self.assertEqual(store.load("stock", default=[]), [{"id": "p-1"}])
        self.assertEqual(StoredValue.objects.count(), 2)

        self.assertTrue(store.save("stock", []))
        self.assertEqual(store.load("stock", default=None), [])
        self.assertEqual(StoredValue.objects.count(), 2)

        self.assertTrue(store.remove("stock", "app-pin"))
        self.assertIsNone(store.load("app-pin"))
        self.assertFalse(StoredValue.objects.exists())

    def test_failed_query_raises_read_error(self):
        with mock.patch.object(StoredValue.objects, "filter", side_effect=DatabaseError("gone")):
            with self.assertRaises(StoreReadError):
                DatabaseStore().load("stock", default=[])


class ShopRepositoryTests(SimpleTestCase):
    def test_empty_store_loads_empty_collections_and_default_settings(self):
        repository = ShopRepository(MemoryStore())

        self.assertEqual(repository.products, [])
        self.assertEqual(repository.sales, [])
        self.assertEqual(repository.customers, [])
        self.assertEqual(repository.khata_entries, [])
        self.assertEqual(repository.settings, AppSettings())
        self.assertEqual(repository.settings.credit_label, "Udhaar Diya (Credit)")

    def test_loads_documents_written_with_plain_numbers(self):
        repository = ShopRepository(MemoryStore(LEGACY_DOCUMENTS))

        product = repository.get_product("p-1")
        self.assertEqual(product.selling_price, Decimal("85000.00"))
        self.assertEqual(product.quantity, 2)
        self.assertIsNone(product.identifier)
        self.assertEqual(repository.khata_entries[0].amount, Decimal("500.50"))
        self.assertEqual(repository.settings.owner_name, "Vishwakarma")
        self.assertEqual(repository.settings.owner_photo, "")

    def test_undecodable_document_raises(self):
        store = MemoryStore({"khataEntries": [{"id": "k-1", "customerId": "c-1", "type": "refund", "amount": 1, "description": "x", "date": "2024-01-01T00:00:00Z"}]})

        with self.assertRaises(EntityDecodeError):
            ShopRepository(store)

    def test_missing_timestamps_are_rejected(self):
        undated_product = dict(LEGACY_DOCUMENTS["stock"][0], dateAdded=None)
        undated_entry = dict(LEGACY_DOCUMENTS["khataEntries"][0], date="")

        with self.assertRaises(EntityDecodeError):
            ShopRepository(MemoryStore({"stock": [undated_product]}))
        with self.assertRaises(EntityDecodeError):
            ShopRepository(MemoryStore({"khataEntries": [undated_entry]}))

    def test_write_persists_every_collection_in_one_store_call(self):
        store = MemoryStore(LEGACY_DOCUMENTS)
        repository = ShopRepository(store)

        repository.write(products=[], customers=[], khata_entries=[])

        self.assertEqual(store.write_count, 1)
        self.assertEqual(store.load("stock"), [])
        self.assertEqual(store.load("customers"), [])
        self.assertEqual(store.load("khataEntries"), [])

    def test_failed_write_keeps_in_memory_state(self):
        store = MemoryStore(LEGACY_DOCUMENTS)
        repository = ShopRepository(store)
        store.fail_writes = True

        with self.assertRaises(StoreWriteError):
            repository.write(products=[], customers=[])

        self.assertEqual(len(repository.products), 1)
        self.assertEqual(len(repository.customers), 1)

    def test_remove_customer_drops_their_entries_in_same_write(self):
        store = MemoryStore(LEGACY_DOCUMENTS)
        repository = ShopRepository(store)

        self.assertTrue(repository.remove_customer("c-1"))

        self.assertEqual(store.write_count, 1)
        reloaded = ShopRepository(store)
        self.assertIsNone(reloaded.get_customer("c-1"))
        self.assertEqual(reloaded.entries_for_customer("c-1"), [])

    def test_remove_unknown_customer_writes_nothing(self):
        store = MemoryStore(LEGACY_DOCUMENTS)
        repository = ShopRepository(store)

        self.assertFalse(repository.remove_customer("missing"))
        self.assertEqual(store.write_count, 0)

    def test_records_survive_a_store_round_trip(self):
        store = MemoryStore()
        repository = ShopRepository(store)
        product = Product.from_dict(LEGACY_DOCUMENTS["stock"][0])
        customer = Customer(id="c-9", name="Asha")
        entry = KhataEntry.from_dict(dict(LEGACY_DOCUMENTS["khataEntries"][0], customerId="c-9", condition="Pay by Friday"))

        repository.write(products=[product], customers=[customer], khata_entries=[entry])
        reloaded = ShopRepository(store)

        self.assertEqual(reloaded.products, [product])
        self.assertEqual(reloaded.customers, [customer])
        self.assertEqual(reloaded.khata_entries, [entry])
        self.assertEqual(store.load("stock")[0]["sellingPrice"], "85000.00")


class ShopServicesTests(SimpleTestCase):
    def test_update_settings_merges_and_persists(self):
        store = MemoryStore()
        repository = ShopRepository(store)

        updated = update_settings(repository, {"owner_name": "Vishwakarma Store", "debit_label": "Jama"})

        self.assertEqual(updated.owner_name, "Vishwakarma Store")
        self.assertEqual(updated.credit_label, "Udhaar Diya (Credit)")
        self.assertEqual(store.load("app-settings")["debitLabel"], "Jama")

    def test_update_settings_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            update_settings(ShopRepository(MemoryStore()), {"currency": "USD"})

    def test_export_backup_has_the_five_sections(self):
        backup = export_backup(ShopRepository(MemoryStore(LEGACY_DOCUMENTS)))

        self.assertEqual(sorted(backup.keys()), ["customers", "khataEntries", "sales", "settings", "stock"])
        self.assertEqual(backup["customers"], [{"id": "c-1", "name": "Ravi", "phone": "9876543210"}])
        self.assertEqual(backup["settings"]["ownerName"], "Vishwakarma")
        self.assertNotIn("app-pin", json.dumps(backup))

    def test_reset_clears_every_key_including_pin(self):
        store = MemoryStore(LEGACY_DOCUMENTS)
        repository = ShopRepository(store)

        removed = reset_all(repository)

        self.assertEqual(removed, {"products": 1, "sales": 0, "customers": 1, "khata_entries": 1})
        for key in ALL_KEYS:
            self.assertIsNone(store.load(key))
        self.assertEqual(repository.products, [])
        self.assertEqual(repository.settings, AppSettings())

    def test_backup_filename_uses_prefix_and_date(self):
        self.assertEqual(backup_filename(date(2024, 3, 5)), "store-backup-2024-03-05.json")

    @override_settings(SHOP_BACKUP_PREFIX="vishwakarma", SHOP_CURRENCY_SYMBOL="Rs. ")
    def test_shop_settings_are_read_at_call_time(self):
        self.assertEqual(backup_filename(date(2024, 3, 5)), "vishwakarma-2024-03-05.json")
        self.assertEqual(format_currency(Decimal("1500")), "Rs. 1,500")


class FormattingTests(SimpleTestCase):
    def test_format_currency_uses_indian_grouping(self):
        self.assertEqual(format_currency(Decimal("85000")), "₹85,000")
        self.assertEqual(format_currency(Decimal("123456")), "₹1,23,456")
        self.assertEqual(format_currency(Decimal("12345678.50")), "₹1,23,45,678.5")
        self.assertEqual(format_currency(Decimal("-500")), "₹-500")
        self.assertEqual(format_currency(0), "₹0")

    def test_json_formatter_lifts_shop_fields(self):
        record = logging.LogRecord("sales.services", logging.INFO, __file__, 1, "sale_recorded", None, None)
        record.sale_id = "s-1"
        record.product_id = "p-1"

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "sale_recorded")
        self.assertEqual(payload["sale_id"], "s-1")
        self.assertEqual(payload["product_id"], "p-1")
        self.assertNotIn("customer_id", payload)


class SettingsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_get_returns_defaults_on_first_run(self):
        response = self.client.get("/api/v1/settings/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["owner_name"], "Store Owner")
        self.assertEqual(response.json()["debit_label"], "Paisa Liya (Debit)")

    def test_patch_updates_single_field(self):
        response = self.client.patch("/api/v1/settings/", {"owner_phone": "9999999999"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(get_repository().settings.owner_phone, "9999999999")
        self.assertEqual(get_repository().settings.owner_name, "Store Owner")

    def test_invalid_email_uses_error_envelope(self):
        response = self.client.patch("/api/v1/settings/", {"owner_email": "not-an-email"}, format="json")

        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["code"], "validation_error")
        self.assertEqual(payload["message"], "Validation failed.")
        self.assertIn("owner_email", payload["errors"])
        self.assertIn("X-Request-ID", response)


class BackupAndResetApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.store = DatabaseStore()
        self.store.save_many(LEGACY_DOCUMENTS)

    def test_backup_is_a_pretty_json_attachment(self):
        response = self.client.get("/api/v1/backup/")

        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment;", response["Content-Disposition"])
        self.assertIn("store-backup-", response["Content-Disposition"])
        body = response.content.decode("utf-8")
        self.assertIn('\n  "stock": [', body)
        self.assertEqual(json.loads(body)["khataEntries"][0]["amount"], "500.50")

    def test_reset_requires_both_confirmations(self):
        response = self.client.post("/api/v1/reset/", {"confirm_phrase": "RESET ALL DATA", "acknowledge_irreversible": False}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("acknowledge_irreversible", response.json()["errors"])

        response = self.client.post("/api/v1/reset/", {"confirm_phrase": "reset", "acknowledge_irreversible": True}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("confirm_phrase", response.json()["errors"])

        self.assertEqual(self.store.load(PIN_KEY), "1234")

    def test_reset_removes_all_keys(self):
        response = self.client.post("/api/v1/reset/", {"confirm_phrase": "RESET ALL DATA", "acknowledge_irreversible": True}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["removed"]["customers"], 1)
        self.assertFalse(StoredValue.objects.exists())

    def test_storage_failure_uses_error_envelope(self):
        with mock.patch.object(DatabaseStore, "remove", return_value=False):
            response = self.client.post("/api/v1/reset/", {"confirm_phrase": "RESET ALL DATA", "acknowledge_irreversible": True}, format="json")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "storage_unavailable")
        self.assertEqual(self.store.load(PIN_KEY), "1234")

    def test_unreachable_database_uses_error_envelope(self):
        with mock.patch.object(StoredValue.objects, "filter", side_effect=DatabaseError("connection refused")):
            response = self.client.get("/api/v1/settings/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "storage_unavailable")


class ManagementCommandTests(TestCase):
    def setUp(self):
        DatabaseStore().save_many(LEGACY_DOCUMENTS)

    def test_export_backup_writes_json_to_stdout(self):
        out = StringIO()

        call_command("export_backup", stdout=out)

        backup = json.loads(out.getvalue())
        self.assertEqual(backup["stock"][0]["model"], "iPhone 14")

    def test_export_backup_writes_file_into_directory(self):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as tmp:
            call_command("export_backup", output=tmp, stdout=StringIO())
            files = list(Path(tmp).glob("store-backup-*.json"))
            self.assertEqual(len(files), 1)
            self.assertEqual(json.loads(files[0].read_text(encoding="utf-8"))["customers"][0]["name"], "Ravi")

    def test_reset_data_noinput(self):
        out = StringIO()

        call_command("reset_data", interactive=False, stdout=out)

        self.assertIn("Shop data reset", out.getvalue())
        self.assertFalse(StoredValue.objects.exists())

    def test_reset_data_stops_when_second_confirmation_is_wrong(self):
        with mock.patch("builtins.input", side_effect=["y", "reset please"]):
            with self.assertRaises(CommandError):
                call_command("reset_data", stdout=StringIO())

        self.assertTrue(StoredValue.objects.filter(key="stock").exists())

    def test_reset_data_after_two_confirmations(self):
        with mock.patch("builtins.input", side_effect=["yes", "RESET ALL DATA"]):
            call_command("reset_data", stdout=StringIO())

        self.assertFalse(StoredValue.objects.exists())

    def test_seed_demo_data_records_a_credit_sale(self):
        StoredValue.objects.all().delete()

        call_command("seed_demo_data", stdout=StringIO())

        repository = get_repository()
        self.assertEqual(len(repository.products), 3)
        self.assertEqual(len(repository.sales), 1)
        self.assertEqual(repository.get_product(repository.sales[0].product.id).quantity, 1)
        self.assertEqual(len(repository.khata_entries), 2)
