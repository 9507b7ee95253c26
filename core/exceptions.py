class ShopError(Exception):
    code = "shop_error"
    status_code = 500
    default_message = "The shop operation could not be completed."

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class StoreWriteError(ShopError):
    """The persistent store refused a write; nothing from that write is visible."""

    code = "storage_unavailable"
    status_code = 503
    default_message = "Shop data could not be saved."


class EntityDecodeError(ShopError):
    code = "corrupt_data"
    status_code = 500
    default_message = "Stored shop data could not be read."


class StoreReadError(ShopError):
    code = "storage_unavailable"
    status_code = 503
    default_message = "Shop data could not be loaded."
