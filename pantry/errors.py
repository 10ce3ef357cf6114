"""Exception hierarchy for the pantry service.

Stores and the product API client raise these. The lookup service and the
inventory ledger catch them and degrade to ``None`` / no-op results, so
callers of those services never see them.
"""


class PantryError(Exception):
    """Base class for all pantry errors"""


class InputError(PantryError, ValueError):
    """Invalid caller input (empty barcode, non-integer delta)"""


class StoreError(PantryError):
    """Base class for remote store failures"""


class StoreUnavailable(StoreError):
    """The remote store was never initialized or cannot be reached"""


class StoreIOError(StoreError):
    """A read or write against the remote store failed"""


class CacheWriteFailed(StoreError):
    """Persisting a lookup outcome failed after the product API answered"""


class NetworkUnavailable(PantryError):
    """The product API cannot be reached because the host is offline"""


class ProductApiError(PantryError):
    """Classified failure from the product lookup API"""

    def __init__(self, barcode: str, message: str = ""):
        self.barcode = barcode
        super().__init__(message or f"Product lookup failed for barcode {barcode}")


class ProductNotFound(ProductApiError):
    """The API answered 404 for the barcode"""


class ProductNoData(ProductApiError):
    """The API answered but has no usable product name"""


class ProductLookupFailed(ProductApiError):
    """Transport error, non-2xx (other than 404) or undecodable payload"""

    def __init__(self, barcode: str, message: str = "", status_code=None):
        self.status_code = status_code
        super().__init__(barcode, message)
