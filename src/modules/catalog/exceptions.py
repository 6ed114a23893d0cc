"""Catalog and inventory domain exceptions.

Raised by ``CatalogService`` and ``InventoryLedger``.  Each exception keeps
the catalog's canonical error code so callers (the order service, the API
exception handler) can translate it without losing the original taxonomy.
"""

from __future__ import annotations

from modules.catalog.constants import CatalogErrorCode
from modules.core.exceptions import DependencyFailure, DomainError, ErrorKind


class ProductNotFound(DomainError):
    """The requested product does not exist in the catalog."""

    kind = ErrorKind.NOT_FOUND
    code = CatalogErrorCode.PRODUCT_NOT_FOUND


class InsufficientStock(DomainError):
    """A reservation or deduction exceeds the quantity on hand."""

    kind = ErrorKind.INSUFFICIENT_STOCK
    code = CatalogErrorCode.UPDATE_FAILED


class StockUpdateConflict(DependencyFailure):
    """The product row kept changing underneath the ledger's compare-and-swap."""

    code = CatalogErrorCode.UPDATE_FAILED


class CatalogUnavailable(DependencyFailure):
    """The catalog store could not be queried."""

    code = CatalogErrorCode.DATABASE_ERROR


class PriceUnavailable(DependencyFailure):
    """A price quote could not be calculated (e.g. the product has no price)."""

    code = CatalogErrorCode.CALCULATION_ERROR
