from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from core.repository import ShopRepository, get_repository
from core.store import MemoryStore
from inventory.services import (
    add_product,
    apply_product_changes,
    decrement_stock,
    delete_product,
    search_stock,
    stock_suggestions,
    stock_summary,
    update_product,
)

IPHONE = {
    "category": "Mobile",
    "brand": "Apple",
    "model": "iPhone 14",
    "identifier": "IMEI-1",
    "purchase_price": Decimal("70000"),
    "selling_price": Decimal("85000"),
    "quantity": 2,
}

CHARGER = {
    "category": "Accessories",
    "brand": "Anker",
    "model": "PowerPort 20W",
    "purchase_price": Decimal("900"),
    "selling_price": Decimal("1400"),
    "quantity": 10,
}


class InventoryServiceTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.repository = ShopRepository(self.store)

    def test_add_product_assigns_id_and_date_and_prepends(self):
        first = add_product(self.repository, CHARGER)
        second = add_product(self.repository, IPHONE)

        self.assertNotEqual(first.id, second.id)
        self.assertIsNotNone(second.date_added)
        self.assertEqual([product.id for product in self.repository.products], [second.id, first.id])
        self.assertEqual(self.store.load("stock")[0]["model"], "iPhone 14")
        self.assertEqual(second.purchase_price, Decimal("70000.00"))

    def test_update_product_replaces_by_id(self):
        product = add_product(self.repository, IPHONE)
        changed = apply_product_changes(product, {"selling_price": Decimal("82000"), "identifier": ""})

        updated = update_product(self.repository, changed)

        self.assertEqual(updated.selling_price, Decimal("82000.00"))
        self.assertIsNone(updated.identifier)
        self.assertEqual(updated.date_added, product.date_added)
        self.assertEqual(ShopRepository(self.store).get_product(product.id).selling_price, Decimal("82000.00"))

    def test_update_unknown_product_is_a_noop(self):
        product = add_product(self.repository, IPHONE)
        delete_product(self.repository, product.id)
        writes = self.store.write_count

        self.assertIsNone(update_product(self.repository, product))
        self.assertEqual(self.store.write_count, writes)
        self.assertEqual(self.repository.products, [])

    def test_update_to_zero_quantity_removes_product(self):
        product = add_product(self.repository, IPHONE)

        self.assertIsNone(update_product(self.repository, product.with_quantity(0)))
        self.assertIsNone(self.repository.get_product(product.id))

    def test_delete_product(self):
        product = add_product(self.repository, IPHONE)

        self.assertTrue(delete_product(self.repository, product.id))
        self.assertFalse(delete_product(self.repository, product.id))
        self.assertEqual(self.store.load("stock"), [])

    def test_decrement_stock_keeps_other_fields(self):
        product = add_product(self.repository, IPHONE)
        other = add_product(self.repository, CHARGER)

        remaining = decrement_stock(self.repository.products, product)

        decremented = next(item for item in remaining if item.id == product.id)
        self.assertEqual(decremented, product.with_quantity(1))
        self.assertIn(other, remaining)

    def test_decrement_last_unit_removes_product(self):
        product = add_product(self.repository, dict(IPHONE, quantity=1))

        self.assertEqual(decrement_stock(self.repository.products, product), [])

    def test_search_matches_category_brand_or_model_newest_first(self):
        iphone = add_product(self.repository, IPHONE)
        charger = add_product(self.repository, CHARGER)

        self.assertEqual(search_stock(self.repository.products, "APPLE"), [iphone])
        self.assertEqual(search_stock(self.repository.products, "accessor"), [charger])
        self.assertEqual(search_stock(self.repository.products, "20w"), [charger])
        self.assertEqual(search_stock(self.repository.products, "   "), [charger, iphone])

    def test_search_orders_by_date_added_not_list_position(self):
        iphone = add_product(self.repository, IPHONE)
        charger = add_product(self.repository, CHARGER)
        backdated = replace(charger, date_added=iphone.date_added - timedelta(days=1))
        update_product(self.repository, backdated)

        self.assertEqual(search_stock(self.repository.products), [iphone, backdated])

    def test_stock_summary(self):
        add_product(self.repository, IPHONE)
        add_product(self.repository, CHARGER)

        summary = stock_summary(self.repository.products)

        self.assertEqual(summary["product_count"], 2)
        self.assertEqual(summary["unit_count"], 12)
        self.assertEqual(summary["purchase_value"], Decimal("149000.00"))
        self.assertEqual(summary["selling_value"], Decimal("184000.00"))
        self.assertEqual(summary["potential_profit"], Decimal("35000.00"))

    def test_full_change_clears_omitted_optional_fields(self):
        product = add_product(self.repository, dict(IPHONE, photo="data:image/png;base64,AAA"))
        body = {name: value for name, value in IPHONE.items() if name != "identifier"}

        replaced = apply_product_changes(product, body, full=True)
        overlaid = apply_product_changes(product, body)

        self.assertIsNone(replaced.identifier)
        self.assertIsNone(replaced.photo)
        self.assertEqual(replaced.date_added, product.date_added)
        self.assertEqual(overlaid.identifier, "IMEI-1")

    def test_stock_suggestions(self):
        add_product(self.repository, IPHONE)
        add_product(self.repository, dict(IPHONE, model="iPhone 15", identifier="IMEI-2"))
        add_product(self.repository, CHARGER)
        add_product(self.repository, dict(CHARGER, brand="Apple", model="MagSafe"))

        suggestions = stock_suggestions(self.repository.products, category="mobile", brand="APPLE")

        self.assertEqual(
            suggestions["categories"],
            ["Mobile", "Laptop", "Accessory", "Charger", "Headphones", "Screen Guard", "Accessories"],
        )
        self.assertEqual(suggestions["brands"], ["Apple"])
        self.assertEqual(sorted(suggestions["models"]), ["MagSafe", "iPhone 14", "iPhone 15"])
        self.assertEqual(sorted(suggestions["identifiers"]), ["IMEI-1", "IMEI-2"])

    def test_stock_suggestions_without_filters(self):
        add_product(self.repository, IPHONE)
        add_product(self.repository, CHARGER)

        suggestions = stock_suggestions(self.repository.products)

        self.assertEqual(sorted(suggestions["brands"]), ["Anker", "Apple"])
        self.assertEqual(suggestions["models"], [])
        self.assertEqual(stock_suggestions([])["categories"][0], "Mobile")


class ProductApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _create(self, **overrides):
        payload = {
            "category": "Mobile",
            "brand": "Apple",
            "model": "iPhone 14",
            "purchase_price": "70000",
            "selling_price": "85000",
            "quantity": 2,
        }
        payload.update(overrides)
        return self.client.post("/api/v1/products/", payload, format="json")

    def test_create_and_list_products(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["selling_price"], "85000.00")
        self.assertEqual(response.json()["display_name"], "Apple iPhone 14")

        listing = self.client.get("/api/v1/products/")
        self.assertEqual(listing.status_code, 200)
        payload = listing.json()
        self.assertEqual(sorted(payload.keys()), ["count", "next", "previous", "results"])
        self.assertEqual(payload["results"][0]["id"], response.json()["id"])

    def test_create_rejects_invalid_stock_intake(self):
        response = self._create(brand="  ", purchase_price="-1", quantity=0)

        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["code"], "validation_error")
        self.assertIn("brand", payload["errors"])
        self.assertIn("purchase_price", payload["errors"])
        self.assertIn("quantity", payload["errors"])
        self.assertEqual(get_repository().products, [])

    def test_create_rejects_fractional_quantity(self):
        response = self._create(quantity="1.5")

        self.assertEqual(response.status_code, 400)
        self.assertIn("quantity", response.json()["errors"])

    def test_search_filters_list(self):
        self._create()
        self._create(category="Accessories", brand="Anker", model="PowerPort 20W")

        response = self.client.get("/api/v1/products/", {"search": "anker"})

        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["results"][0]["brand"], "Anker")

    def test_patch_keeps_id_and_date_added(self):
        created = self._create().json()

        response = self.client.patch(f"/api/v1/products/{created['id']}/", {"selling_price": "83000"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], created["id"])
        self.assertEqual(response.json()["date_added"], created["date_added"])
        self.assertEqual(response.json()["selling_price"], "83000.00")
        self.assertEqual(response.json()["quantity"], 2)

    def test_unknown_product_returns_not_found_envelope(self):
        response = self.client.get("/api/v1/products/does-not-exist/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "not_found")
        self.assertEqual(response.json()["status"], 404)

    def test_delete_product(self):
        created = self._create().json()

        self.assertEqual(self.client.delete(f"/api/v1/products/{created['id']}/").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/v1/products/{created['id']}/").status_code, 404)

    def test_summary(self):
        self._create()

        response = self.client.get("/api/v1/products/summary/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["unit_count"], 2)
        self.assertEqual(response.json()["potential_profit"], "30000.00")

    def test_put_replaces_the_whole_record(self):
        created = self._create(identifier="IMEI1", photo="data:image/png;base64,AAA").json()
        body = {
            "category": "Mobile",
            "brand": "Apple",
            "model": "iPhone 14",
            "purchase_price": "70000",
            "selling_price": "84000",
            "quantity": 2,
        }

        response = self.client.put(f"/api/v1/products/{created['id']}/", body, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["identifier"])
        self.assertIsNone(response.json()["photo"])
        self.assertEqual(response.json()["date_added"], created["date_added"])
        self.assertIsNone(get_repository().get_product(created["id"]).identifier)

    def test_suggestions_endpoint(self):
        self._create(identifier="IMEI1")
        self._create(category="Accessories", brand="Anker", model="PowerPort 20W")

        response = self.client.get("/api/v1/products/suggestions/", {"category": "accessories", "brand": "apple"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertIn("Accessories", payload["categories"])
        self.assertEqual(payload["brands"], ["Anker"])
        self.assertEqual(payload["models"], ["iPhone 14"])
        self.assertEqual(payload["identifiers"], ["IMEI1"])
