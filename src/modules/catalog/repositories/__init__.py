"""Product repositories package."""

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.repositories.interfaces import IProductRepository, StockLevels

__all__ = ["IProductRepository", "ProductDjangoRepository", "StockLevels"]
