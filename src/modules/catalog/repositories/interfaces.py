"""Product repository interface.

Extends ``IRepository[Product]`` with the look-ups the catalog needs
(criteria search) and the stock primitives the inventory ledger builds on
(row lock + compare-and-swap of the two counters).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, NamedTuple, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.dtos import SearchCriteria
    from modules.catalog.models import Product


class StockLevels(NamedTuple):
    available: int
    reserved: int


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def search(self, criteria: SearchCriteria) -> Iterable[Product]:
        """Return a lazy, restartable sequence of products matching *criteria*."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` if the product does not exist.
        """

    @abstractmethod
    def compare_and_set_stock(
        self, id: str, expected: StockLevels, new: StockLevels
    ) -> bool:
        """Write *new* counters only if the row still holds *expected*.

        Returns ``True`` when exactly one row was updated.
        """
