"""Inventory ledger: per-product reserve / release / deduct.

Each operation is a compare-and-swap loop on one product row:

1. Inside a (nested) transaction, read the row with ``SELECT FOR UPDATE``.
   On backends with row locks this serialises writers of the same product.
2. Compute the new ``(available, reserved)`` pair, enforcing the rules.
3. ``UPDATE ... WHERE available = <read> AND reserved = <read>``.
   If another writer got in between, nothing is updated and the loop
   re-reads; after ``INVENTORY_CAS_MAX_RETRIES`` attempts the operation
   fails with ``StockUpdateConflict``.

Operations on different products never contend: there is no lock wider
than a single product row.

Rules:
- ``reserve`` never exceeds the free quantity (available - reserved).
- ``release`` clamps ``reserved`` at zero and logs the inconsistency
  instead of failing, because it runs from compensating paths that must
  always succeed.
- ``deduct`` never takes more than is reserved; it lowers both counters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Tuple

import structlog
from django.conf import settings
from django.db import transaction

from modules.catalog.dtos import InventoryStatus
from modules.catalog.exceptions import (
    InsufficientStock,
    ProductNotFound,
    StockUpdateConflict,
)
from modules.catalog.repositories.interfaces import StockLevels
from modules.core.exceptions import InvalidInput

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import IProductRepository
    from shared.domain.observability import IObservability

logger = structlog.get_logger(__name__)

Mutation = Callable[[StockLevels], StockLevels]


def _require_product_id(product_id: str) -> None:
    if not product_id or not str(product_id).strip():
        raise InvalidInput("Product ID cannot be null or empty.")


def _require_positive(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput("Quantity must be greater than zero.")


def _status(product_id: str, levels: StockLevels) -> InventoryStatus:
    return InventoryStatus(
        product_id=product_id,
        available_quantity=levels.available,
        reserved_quantity=levels.reserved,
    )


class InventoryLedger:
    """Atomic inventory counters for catalog products.

    Receives an ``IProductRepository`` and, optionally, an observability
    collaborator via constructor injection.
    """

    def __init__(
        self,
        repository: IProductRepository,
        observability: Optional[IObservability] = None,
        max_retries: Optional[int] = None,
    ) -> None:
        self._repo = repository
        self._log = observability or logger
        if max_retries is None:
            max_retries = settings.INVENTORY_CAS_MAX_RETRIES
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}.")
        self._max_retries = max_retries

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def reserve(self, product_id: str, quantity: int) -> InventoryStatus:
        """Hold *quantity* units for an open order.

        Raises:
            InvalidInput: empty product id or non-positive quantity.
            ProductNotFound: unknown product.
            InsufficientStock: *quantity* exceeds the free quantity.
        """

        def mutate(levels: StockLevels) -> StockLevels:
            free = levels.available - levels.reserved
            if quantity > free:
                raise InsufficientStock(
                    f"Product {product_id}: requested {quantity}, available {free}."
                )
            return StockLevels(levels.available, levels.reserved + quantity)

        _, after = self._apply("reserve", product_id, quantity, mutate)
        self._log.info(
            "inventory.reserved",
            product_id=product_id,
            quantity=quantity,
            reserved=after.reserved,
            free=after.available - after.reserved,
        )
        return _status(product_id, after)

    def release(self, product_id: str, quantity: int) -> InventoryStatus:
        """Return *quantity* reserved units to the free pool.

        Releasing more than is reserved floors ``reserved`` at zero.

        Raises:
            InvalidInput: empty product id or non-positive quantity.
            ProductNotFound: unknown product.
        """

        def mutate(levels: StockLevels) -> StockLevels:
            return StockLevels(levels.available, max(levels.reserved - quantity, 0))

        before, after = self._apply("release", product_id, quantity, mutate)
        if quantity > before.reserved:
            self._log.warning(
                "inventory.release_inconsistency",
                product_id=product_id,
                requested=quantity,
                reserved=before.reserved,
            )
        self._log.info(
            "inventory.released",
            product_id=product_id,
            quantity=before.reserved - after.reserved,
            reserved=after.reserved,
        )
        return _status(product_id, after)

    def deduct(self, product_id: str, quantity: int) -> InventoryStatus:
        """Remove *quantity* reserved units from stock (they have shipped).

        Raises:
            InvalidInput: empty product id or non-positive quantity.
            ProductNotFound: unknown product.
            InsufficientStock: *quantity* exceeds the reserved quantity.
        """

        def mutate(levels: StockLevels) -> StockLevels:
            if quantity > levels.reserved:
                raise InsufficientStock(
                    f"Product {product_id}: cannot deduct {quantity}, "
                    f"only {levels.reserved} reserved."
                )
            return StockLevels(levels.available - quantity, levels.reserved - quantity)

        _, after = self._apply("deduct", product_id, quantity, mutate)
        self._log.info(
            "inventory.deducted",
            product_id=product_id,
            quantity=quantity,
            available=after.available,
            reserved=after.reserved,
        )
        return _status(product_id, after)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self, product_id: str) -> InventoryStatus:
        """Current counters of a product.

        Raises:
            ProductNotFound: unknown product.
        """
        _require_product_id(product_id)
        product = self._repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(f"Product with ID {product_id} not found.")
        return InventoryStatus.from_entity(product)

    # ------------------------------------------------------------------
    # Compare-and-swap loop
    # ------------------------------------------------------------------

    def _apply(
        self,
        operation: str,
        product_id: str,
        quantity: int,
        mutate: Mutation,
    ) -> Tuple[StockLevels, StockLevels]:
        _require_product_id(product_id)
        _require_positive(quantity)

        for attempt in range(1, self._max_retries + 1):
            with transaction.atomic():
                product = self._repo.get_for_update(product_id)
                if product is None:
                    raise ProductNotFound(f"Product with ID {product_id} not found.")
                before = StockLevels(product.available_quantity, product.reserved_quantity)
                after = mutate(before)
                if self._repo.compare_and_set_stock(product_id, before, after):
                    return before, after
            self._log.warning(
                "inventory.cas_retry",
                operation=operation,
                product_id=product_id,
                attempt=attempt,
            )

        self._log.error(
            "inventory.cas_exhausted",
            operation=operation,
            product_id=product_id,
            attempts=self._max_retries,
        )
        raise StockUpdateConflict(
            f"Failed to update inventory for product {product_id} "
            f"after {self._max_retries} attempts."
        )
