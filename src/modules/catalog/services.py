"""Catalog service layer (capability surface).

Read-only product look-ups plus the inventory operations the rest of the
system is allowed to call.  Mirrors the catalog's public contract:

- ``get_product_by_id`` / ``find_by_id``
- ``search_products`` / ``search``
- ``get_product_price``
- ``check_inventory``
- ``update_inventory`` (RESERVE / RELEASE / DEDUCT)

Every failure is a ``DomainError`` carrying a ``CatalogErrorCode``;
database errors are translated to ``CatalogUnavailable`` (``DATABASE_ERROR``).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Optional, Union

import structlog
from django.db import DatabaseError

from modules.catalog.constants import InventoryOperation
from modules.catalog.dtos import InventoryStatus, PriceQuote, ProductDTO, SearchCriteria
from modules.catalog.exceptions import CatalogUnavailable, PriceUnavailable, ProductNotFound
from modules.catalog.ledger import InventoryLedger
from modules.core.exceptions import InvalidInput

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.catalog.models import Product
    from modules.catalog.repositories.interfaces import IProductRepository
    from shared.domain.observability import IObservability

logger = structlog.get_logger(__name__)


@contextmanager
def _database_errors(action: str, log: IObservability, **context) -> Iterator[None]:
    try:
        yield
    except DatabaseError as exc:
        log.error("catalog.database_error", action=action, error=str(exc), **context)
        raise CatalogUnavailable(f"Failed to {action}.") from exc


class ProductSearchResult:
    """Lazy, restartable sequence of ``ProductDTO``.

    Nothing is queried until iteration starts; every new iteration runs
    the query again, so the result can be consumed more than once.
    """

    def __init__(self, queryset: QuerySet[Product], log: IObservability) -> None:
        self._queryset = queryset
        self._log = log

    def __iter__(self) -> Iterator[ProductDTO]:
        with _database_errors("search products", self._log):
            for product in self._queryset.all():
                yield ProductDTO.from_entity(product)

    def count(self) -> int:
        with _database_errors("count products", self._log):
            return self._queryset.count()


class CatalogService:
    """Application service for catalog look-ups and inventory updates.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    The inventory ledger shares the same repository unless one is given.
    """

    def __init__(
        self,
        repository: IProductRepository,
        ledger: Optional[InventoryLedger] = None,
        observability: Optional[IObservability] = None,
    ) -> None:
        self._repo = repository
        self._log = observability or logger
        self._ledger = ledger or InventoryLedger(repository, observability=self._log)

    @property
    def ledger(self) -> InventoryLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Look-ups
    # ------------------------------------------------------------------

    def find_by_id(self, product_id: str) -> ProductDTO:
        """Resolve a product's identity, title and price.

        Raises:
            InvalidInput: empty product id.
            ProductNotFound: unknown product.
            CatalogUnavailable: the store could not be queried.
        """
        product = self._fetch(product_id)
        self._log.info("catalog.product_found", product_id=product_id)
        return ProductDTO.from_entity(product)

    get_product_by_id = find_by_id

    def search(self, criteria: Optional[SearchCriteria]) -> ProductSearchResult:
        """Return products matching *criteria*; an empty result is not an error."""
        if criteria is None:
            raise InvalidInput("Search criteria cannot be null.")
        with _database_errors("search products", self._log):
            queryset = self._repo.search(criteria)
        self._log.info(
            "catalog.search",
            criteria=criteria.model_dump(exclude_none=True, mode="json"),
        )
        return ProductSearchResult(queryset, self._log)

    search_products = search

    def get_product_price(self, product_id: str, quantity: int) -> PriceQuote:
        """Quote ``unit_price × quantity`` for one product.

        Raises:
            InvalidInput: empty product id or non-positive quantity.
            ProductNotFound: unknown product.
            PriceUnavailable: the product has no catalog price.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInput("Quantity must be greater than zero.")
        product = self._fetch(product_id)
        if product.price is None:
            self._log.error("catalog.price_missing", product_id=product_id)
            raise PriceUnavailable(f"Product {product_id} has no price.")
        quote = PriceQuote(product_id=product.id, unit_price=product.price, quantity=quantity)
        self._log.info("catalog.price_quoted", product_id=product_id, total=str(quote.total))
        return quote

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def check_inventory(self, product_id: str) -> InventoryStatus:
        with _database_errors("check inventory", self._log, product_id=product_id):
            return self._ledger.get_status(product_id)

    def update_inventory(
        self,
        product_id: str,
        quantity: int,
        operation: Union[InventoryOperation, str],
    ) -> bool:
        """Apply one ledger operation.

        Raises:
            InvalidInput: unknown operation, empty id, non-positive quantity.
            ProductNotFound: unknown product.
            InsufficientStock: reserve/deduct beyond what is possible.
            StockUpdateConflict: the row kept changing (``UPDATE_FAILED``).
        """
        try:
            op = InventoryOperation(operation)
        except ValueError:
            raise InvalidInput("Operation must be RESERVE, RELEASE, or DEDUCT.") from None

        handlers: Dict[InventoryOperation, Callable[[str, int], InventoryStatus]] = {
            InventoryOperation.RESERVE: self._ledger.reserve,
            InventoryOperation.RELEASE: self._ledger.release,
            InventoryOperation.DEDUCT: self._ledger.deduct,
        }
        with _database_errors("update inventory", self._log, product_id=product_id):
            handlers[op](product_id, quantity)
        self._log.info(
            "catalog.inventory_updated",
            product_id=product_id,
            quantity=quantity,
            operation=op.value,
        )
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch(self, product_id: str) -> Product:
        if not product_id or not str(product_id).strip():
            raise InvalidInput("Product ID cannot be null or empty.")
        with _database_errors("retrieve product", self._log, product_id=product_id):
            product = self._repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(f"Product with ID {product_id} not found.")
        return product
