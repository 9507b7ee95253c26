import logging
import uuid
from dataclasses import replace
from decimal import Decimal

from django.utils import timezone

from common.utils import to_money
from core.entities import Product

logger = logging.getLogger(__name__)


def add_product(repository, data):
    """
    Take a validated stock intake and put it at the top of the stock list.
    `data` carries everything but `id` and `date_added`, which are assigned here.
    """
    product = Product(
        id=str(uuid.uuid4()),
        category=data["category"],
        brand=data["brand"],
        model=data["model"],
        identifier=data.get("identifier") or None,
        purchase_price=to_money(data["purchase_price"]),
        selling_price=to_money(data["selling_price"]),
        quantity=int(data["quantity"]),
        date_added=timezone.now(),
        photo=data.get("photo") or None,
    )
    repository.write(products=[product] + repository.products)
    logger.info("product_added", extra={"product_id": product.id})
    return product


def update_product(repository, product):
    if repository.get_product(product.id) is None:
        logger.warning("product_update_missed", extra={"product_id": product.id})
        return None

    if product.quantity <= 0:
        delete_product(repository, product.id)
        return None

    repository.write(products=[product if item.id == product.id else item for item in repository.products])
    logger.info("product_updated", extra={"product_id": product.id})
    return product


OPTIONAL_PRODUCT_FIELDS = ("identifier", "photo")


def apply_product_changes(product, changes, *, full=False):
    """Copy of `product` with validated field changes; id and date_added are never touched.

    With `full`, the changes are the whole new record and optional fields left
    out of them are cleared.
    """
    changes = {name: value for name, value in changes.items() if name not in {"id", "date_added"}}
    if full:
        for name in OPTIONAL_PRODUCT_FIELDS:
            changes.setdefault(name, None)
    for name in ("purchase_price", "selling_price"):
        if name in changes:
            changes[name] = to_money(changes[name])
    for name in OPTIONAL_PRODUCT_FIELDS:
        if name in changes:
            changes[name] = changes[name] or None
    return replace(product, **changes)


def delete_product(repository, product_id):
    product_id = str(product_id)
    if repository.get_product(product_id) is None:
        return False
    repository.write(products=[product for product in repository.products if product.id != product_id])
    logger.info("product_deleted", extra={"product_id": product_id})
    return True


def decrement_stock(products, product):
    """Stock after one unit of `product` leaves the shop; a last unit removes the product."""
    if product.quantity > 1:
        return [item.with_quantity(item.quantity - 1) if item.id == product.id else item for item in products]
    return [item for item in products if item.id != product.id]


def search_stock(products, term=None):
    term = (term or "").strip().lower()
    if term:
        products = [
            product
            for product in products
            if term in product.category.lower() or term in product.brand.lower() or term in product.model.lower()
        ]
    return sorted(products, key=lambda product: product.date_added, reverse=True)


def stock_summary(products):
    purchase_value = sum((product.purchase_price * product.quantity for product in products), Decimal("0"))
    selling_value = sum((product.selling_price * product.quantity for product in products), Decimal("0"))
    return {
        "product_count": len(products),
        "unit_count": sum(product.quantity for product in products),
        "purchase_value": to_money(purchase_value),
        "selling_value": to_money(selling_value),
        "potential_profit": to_money(selling_value - purchase_value),
    }


DEFAULT_CATEGORIES = ("Mobile", "Laptop", "Accessory", "Charger", "Headphones", "Screen Guard")


def _distinct(values):
    return list(dict.fromkeys(value for value in values if value))


def stock_suggestions(products, category=None, brand=None):
    """
    Autocomplete values for the stock intake form.

    Brands narrow to `category` and models to `brand`, both compared
    case-insensitively. Models are only suggested once a brand is chosen.
    """
    category = (category or "").strip().lower()
    brand = (brand or "").strip().lower()

    brand_source = [product for product in products if product.category.lower() == category] if category else products
    models = [product.model for product in products if product.brand.lower() == brand] if brand else []
    return {
        "categories": _distinct([*DEFAULT_CATEGORIES, *(product.category for product in products)]),
        "brands": _distinct(product.brand for product in brand_source),
        "models": _distinct(models),
        "identifiers": _distinct(product.identifier for product in products),
    }
