"""Shop records as they live in the key-value store.

Each record converts to and from the stored JSON document with ``to_dict`` /
``from_dict``. Stored documents use camelCase keys, money as decimal strings
and ISO 8601 timestamps. Records reference each other by id only.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal

from common.utils import parse_timestamp, to_json_compatible, to_money
from core.exceptions import EntityDecodeError


class EntryType:
    CREDIT = "credit"
    DEBIT = "debit"

    choices = (
        (CREDIT, "Credit"),
        (DEBIT, "Debit"),
    )
    values = {CREDIT, DEBIT}


def _require(data, key, kind):
    try:
        return data[key]
    except (KeyError, TypeError):
        raise EntityDecodeError(details={kind: f"Missing '{key}'."})


def _optional(value):
    return value if value not in (None, "") else None


@dataclass(frozen=True)
class Product:
    id: str
    category: str
    brand: str
    model: str
    purchase_price: Decimal
    selling_price: Decimal
    quantity: int
    date_added: datetime
    identifier: str | None = None
    photo: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"

    def with_quantity(self, quantity: int) -> Product:
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "identifier": self.identifier,
            "purchasePrice": self.purchase_price,
            "sellingPrice": self.selling_price,
            "dateAdded": self.date_added,
            "quantity": self.quantity,
            "photo": self.photo,
        }
        return to_json_compatible({key: value for key, value in data.items() if value is not None})

    @classmethod
    def from_dict(cls, data: dict) -> Product:
        try:
            return cls(
                id=str(_require(data, "id", "product")),
                category=_require(data, "category", "product"),
                brand=_require(data, "brand", "product"),
                model=_require(data, "model", "product"),
                identifier=_optional(data.get("identifier")),
                purchase_price=to_money(_require(data, "purchasePrice", "product")),
                selling_price=to_money(_require(data, "sellingPrice", "product")),
                quantity=int(_require(data, "quantity", "product")),
                date_added=parse_timestamp(_require(data, "dateAdded", "product")),
                photo=_optional(data.get("photo")),
            )
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise EntityDecodeError(details={"product": str(exc)}) from exc


@dataclass(frozen=True)
class SaleRecord:
    id: str
    product: Product
    date_sold: datetime
    profit: Decimal

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "dateSold": self.date_sold.isoformat(),
            "profit": str(self.profit),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SaleRecord:
        try:
            return cls(
                id=str(_require(data, "id", "sale")),
                product=Product.from_dict(_require(data, "product", "sale")),
                date_sold=parse_timestamp(_require(data, "dateSold", "sale")),
                profit=to_money(_require(data, "profit", "sale")),
            )
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise EntityDecodeError(details={"sale": str(exc)}) from exc


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str | None = None
    photo: str | None = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "phone": self.phone, "photo": self.photo}
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: dict) -> Customer:
        return cls(
            id=str(_require(data, "id", "customer")),
            name=_require(data, "name", "customer"),
            phone=_optional(data.get("phone")),
            photo=_optional(data.get("photo")),
        )


@dataclass(frozen=True)
class KhataEntry:
    id: str
    customer_id: str
    type: str
    amount: Decimal
    description: str
    date: datetime
    product_name: str | None = None
    condition: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == EntryType.CREDIT else -self.amount

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "customerId": self.customer_id,
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
            "date": self.date,
            "productName": self.product_name,
            "condition": self.condition,
        }
        return to_json_compatible({key: value for key, value in data.items() if value is not None})

    @classmethod
    def from_dict(cls, data: dict) -> KhataEntry:
        entry_type = _require(data, "type", "khata_entry")
        if entry_type not in EntryType.values:
            raise EntityDecodeError(details={"khata_entry": f"Unknown entry type '{entry_type}'."})
        try:
            return cls(
                id=str(_require(data, "id", "khata_entry")),
                customer_id=str(_require(data, "customerId", "khata_entry")),
                type=entry_type,
                amount=to_money(_require(data, "amount", "khata_entry")),
                description=_require(data, "description", "khata_entry"),
                date=parse_timestamp(_require(data, "date", "khata_entry")),
                product_name=_optional(data.get("productName")),
                condition=_optional(data.get("condition")),
            )
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise EntityDecodeError(details={"khata_entry": str(exc)}) from exc


@dataclass(frozen=True)
class AppSettings:
    owner_name: str = "Store Owner"
    owner_photo: str = ""
    owner_email: str = ""
    owner_phone: str = ""
    credit_label: str = "Udhaar Diya (Credit)"
    debit_label: str = "Paisa Liya (Debit)"

    STORAGE_KEYS = {
        "owner_name": "ownerName",
        "owner_photo": "ownerPhoto",
        "owner_email": "ownerEmail",
        "owner_phone": "ownerPhone",
        "credit_label": "creditLabel",
        "debit_label": "debitLabel",
    }

    def to_dict(self) -> dict:
        return {stored: getattr(self, name) for name, stored in self.STORAGE_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict | None) -> AppSettings:
        defaults = cls()
        data = data if isinstance(data, dict) else {}
        values = {}
        for item in fields(cls):
            stored = cls.STORAGE_KEYS[item.name]
            value = data.get(stored)
            values[item.name] = str(value) if value is not None else getattr(defaults, item.name)
        return cls(**values)


@dataclass(frozen=True)
class CreditSale:
    sale: SaleRecord
    entry: KhataEntry
