"""Key-value persistence behind the shop repository.

A store maps a string key to a JSON-serialisable document. ``load`` returns a
default for missing keys; ``save_many`` writes several keys as one unit so a
sale never lands half-written.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod

from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction

from core.exceptions import StoreReadError
from core.models import StoredValue

logger = logging.getLogger(__name__)

STOCK_KEY = "stock"
SALES_KEY = "sales"
CUSTOMERS_KEY = "customers"
KHATA_ENTRIES_KEY = "khataEntries"
SETTINGS_KEY = "app-settings"
PIN_KEY = "app-pin"

ALL_KEYS = (STOCK_KEY, SALES_KEY, CUSTOMERS_KEY, KHATA_ENTRIES_KEY, SETTINGS_KEY, PIN_KEY)


def _json_safe(value):
    if value is None:
        return None
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


class KeyValueStore(ABC):
    @abstractmethod
    def load(self, key, default=None):
        ...

    def save(self, key, value) -> bool:
        return self.save_many({key: value})

    @abstractmethod
    def save_many(self, values: dict) -> bool:
        ...

    @abstractmethod
    def remove(self, *keys) -> bool:
        ...


class DatabaseStore(KeyValueStore):
    """Documents kept as ``StoredValue`` rows; multi-key writes share one transaction."""

    def load(self, key, default=None):
        try:
            row = StoredValue.objects.filter(key=key).only("value").first()
        except DatabaseError as exc:
            logger.exception("store_read_failed", extra={"keys": [key]})
            raise StoreReadError(details={"keys": [key]}) from exc
        if row is None or row.value is None:
            return copy.deepcopy(default)
        return row.value

    def save_many(self, values: dict) -> bool:
        try:
            with transaction.atomic():
                for key, value in values.items():
                    StoredValue.objects.update_or_create(key=key, defaults={"value": _json_safe(value)})
        except DatabaseError:
            logger.exception("store_write_failed", extra={"keys": sorted(values)})
            return False
        return True

    def remove(self, *keys) -> bool:
        try:
            with transaction.atomic():
                StoredValue.objects.filter(key__in=keys).delete()
        except DatabaseError:
            logger.exception("store_remove_failed", extra={"keys": sorted(keys)})
            return False
        return True


class MemoryStore(KeyValueStore):
    """Dict-backed store; values go through JSON like the database would."""

    def __init__(self, initial: dict | None = None):
        self.data = {key: _json_safe(value) for key, value in (initial or {}).items()}
        self.fail_writes = False
        self.write_count = 0

    def load(self, key, default=None):
        if key not in self.data or self.data[key] is None:
            return copy.deepcopy(default)
        return copy.deepcopy(self.data[key])

    def save_many(self, values: dict) -> bool:
        if self.fail_writes:
            return False
        encoded = {key: _json_safe(value) for key, value in values.items()}
        self.data.update(encoded)
        self.write_count += 1
        return True

    def remove(self, *keys) -> bool:
        if self.fail_writes:
            return False
        for key in keys:
            self.data.pop(key, None)
        self.write_count += 1
        return True
