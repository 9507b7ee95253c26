from decimal import Decimal

from django.core.management.base import BaseCommand

from core.repository import get_repository
from inventory.services import add_product
from sales.services import add_customer, add_khata_entry, sell_on_credit

DEMO_PRODUCTS = [
    {
        "category": "Mobile",
        "brand": "Apple",
        "model": "iPhone 14",
        "identifier": "IMEI-356789104512345",
        "purchase_price": Decimal("70000"),
        "selling_price": Decimal("85000"),
        "quantity": 2,
    },
    {
        "category": "Mobile",
        "brand": "Samsung",
        "model": "Galaxy A54",
        "purchase_price": Decimal("31000"),
        "selling_price": Decimal("36999"),
        "quantity": 4,
    },
    {
        "category": "Accessories",
        "brand": "boAt",
        "model": "Airdopes 141",
        "purchase_price": Decimal("899"),
        "selling_price": Decimal("1299"),
        "quantity": 15,
    },
]

DEMO_CUSTOMERS = [
    {"name": "Ravi", "phone": "9876543210"},
    {"name": "Sunita", "phone": "9123456780"},
]


class Command(BaseCommand):
    help = "Seed demo stock, customers and one credit sale for local development."

    def handle(self, *args, **options):
        repository = get_repository()
        if repository.products or repository.customers:
            self.stdout.write(self.style.WARNING("Shop already has data; nothing seeded."))
            return

        products = [add_product(repository, data) for data in DEMO_PRODUCTS]
        customers = [add_customer(repository, data) for data in DEMO_CUSTOMERS]

        ravi = customers[0]
        sell_on_credit(repository, products[0].id, ravi.id, "Balance by month end")
        add_khata_entry(repository, ravi.id, "debit", Decimal("20000"), "Cash received")

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {len(repository.products)} products, {len(repository.customers)} customers, "
                f"{len(repository.sales)} sale and {len(repository.khata_entries)} khata entries."
            )
        )
