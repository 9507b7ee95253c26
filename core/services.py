import json
import logging
from dataclasses import replace

from django.conf import settings as django_settings
from django.utils import timezone

from core.entities import AppSettings

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = {item for item in AppSettings.STORAGE_KEYS}


def update_settings(repository, changes):
    unknown = set(changes) - SETTINGS_FIELDS
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    updated = replace(repository.settings, **{name: "" if value is None else str(value) for name, value in changes.items()})
    repository.write(settings=updated)
    logger.info("settings_updated")
    return updated


def export_backup(repository):
    return repository.export()


def render_backup(repository):
    return json.dumps(export_backup(repository), indent=2, ensure_ascii=False)


def backup_filename(today=None):
    today = today or timezone.localdate()
    return f"{django_settings.SHOP_BACKUP_PREFIX}-{today.isoformat()}.json"


def reset_all(repository):
    """Wipe every stored key, including the lock PIN, and fall back to defaults."""
    counts = {
        "products": len(repository.products),
        "sales": len(repository.sales),
        "customers": len(repository.customers),
        "khata_entries": len(repository.khata_entries),
    }
    repository.clear()
    logger.warning("shop_data_reset %s", " ".join(f"{name}={count}" for name, count in counts.items()))
    return counts
