import datetime
import decimal
import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

MONEY_QUANT = Decimal("0.01")


def to_json_compatible(value):
    if isinstance(value, dict):
        return {key: to_json_compatible(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_compatible(item) for item in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    return value


def to_money(value):
    """Coerce stored numbers (legacy floats/ints or decimal strings) to a 2dp Decimal."""
    if value in (None, ""):
        value = 0
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def parse_timestamp(value):
    if value in (None, ""):
        raise ValueError("Timestamp is required.")
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            raise ValueError(f"Invalid timestamp: {value!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, datetime.timezone.utc)
    return parsed


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount, symbol=None):
    """Display an amount the way the shop writes it, e.g. ``₹1,23,456.5``."""
    symbol = settings.SHOP_CURRENCY_SYMBOL if symbol is None else symbol
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{symbol}{sign}{text}"
