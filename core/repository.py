from __future__ import annotations

import logging

from core.entities import AppSettings, Customer, KhataEntry, Product, SaleRecord
from core.exceptions import EntityDecodeError, StoreWriteError
from core.store import (
    ALL_KEYS,
    CUSTOMERS_KEY,
    KHATA_ENTRIES_KEY,
    SALES_KEY,
    SETTINGS_KEY,
    STOCK_KEY,
    DatabaseStore,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

# attribute name -> (store key, record type)
COLLECTIONS = {
    "products": (STOCK_KEY, Product),
    "sales": (SALES_KEY, SaleRecord),
    "customers": (CUSTOMERS_KEY, Customer),
    "khata_entries": (KHATA_ENTRIES_KEY, KhataEntry),
}


class ShopRepository:
    """In-memory view of every shop collection, written through to a key-value store.

    All collections are loaded when the repository is built. Mutations go
    through :meth:`write`, which persists every touched collection in a single
    ``save_many`` call and swaps the in-memory lists only after the store
    accepted the write.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.products: list[Product] = []
        self.sales: list[SaleRecord] = []
        self.customers: list[Customer] = []
        self.khata_entries: list[KhataEntry] = []
        self.settings = AppSettings()
        self.reload()

    def reload(self) -> None:
        for attribute, (key, record_type) in COLLECTIONS.items():
            documents = self.store.load(key, default=[])
            if not isinstance(documents, list):
                raise EntityDecodeError(details={key: "Expected a list of records."})
            setattr(self, attribute, [record_type.from_dict(item) for item in documents])
        self.settings = AppSettings.from_dict(self.store.load(SETTINGS_KEY, default=None))

    def get_product(self, product_id) -> Product | None:
        return next((product for product in self.products if product.id == str(product_id)), None)

    def get_customer(self, customer_id) -> Customer | None:
        return next((customer for customer in self.customers if customer.id == str(customer_id)), None)

    def entries_for_customer(self, customer_id) -> list[KhataEntry]:
        return [entry for entry in self.khata_entries if entry.customer_id == str(customer_id)]

    def write(self, *, settings: AppSettings | None = None, **collections) -> None:
        unknown = set(collections) - set(COLLECTIONS)
        if unknown:
            raise TypeError(f"Unknown collections: {', '.join(sorted(unknown))}")

        documents = {}
        for attribute, records in collections.items():
            key, _ = COLLECTIONS[attribute]
            documents[key] = [record.to_dict() for record in records]
        if settings is not None:
            documents[SETTINGS_KEY] = settings.to_dict()

        if not self.store.save_many(documents):
            raise StoreWriteError(details={"keys": sorted(documents)})

        for attribute, records in collections.items():
            setattr(self, attribute, list(records))
        if settings is not None:
            self.settings = settings
        logger.debug("repository_written", extra={"keys": sorted(documents)})

    def remove_customer(self, customer_id) -> bool:
        """Drop a customer and every khata entry pointing at it in one write."""
        customer_id = str(customer_id)
        if self.get_customer(customer_id) is None:
            return False
        self.write(
            customers=[customer for customer in self.customers if customer.id != customer_id],
            khata_entries=[entry for entry in self.khata_entries if entry.customer_id != customer_id],
        )
        return True

    def clear(self) -> None:
        if not self.store.remove(*ALL_KEYS):
            raise StoreWriteError(details={"keys": list(ALL_KEYS)})
        self.reload()

    def export(self) -> dict:
        return {
            "stock": [product.to_dict() for product in self.products],
            "sales": [sale.to_dict() for sale in self.sales],
            "customers": [customer.to_dict() for customer in self.customers],
            "khataEntries": [entry.to_dict() for entry in self.khata_entries],
            "settings": self.settings.to_dict(),
        }


def get_repository(store: KeyValueStore | None = None) -> ShopRepository:
    return ShopRepository(store or DatabaseStore())
