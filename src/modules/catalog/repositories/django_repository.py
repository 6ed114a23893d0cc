"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising, and the service layer decides how to translate a
missing entity.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.catalog.dtos import SearchCriteria
from modules.catalog.models import Product
from modules.catalog.repositories.interfaces import IProductRepository, StockLevels

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        return Product.objects.filter(id=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"category": "fiction"}
            {"title__icontains": "dune"}
        """
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def search(self, criteria: SearchCriteria) -> QuerySet[Product]:
        """Build (but do not evaluate) a QuerySet for *criteria*.

        QuerySets are lazy and can be iterated more than once, each
        iteration hitting the database again.
        """
        queryset = Product.objects.all()
        if criteria.title:
            queryset = queryset.filter(title__icontains=criteria.title)
        if criteria.author:
            queryset = queryset.filter(author__icontains=criteria.author)
        if criteria.category:
            queryset = queryset.filter(category__iexact=criteria.category)
        if criteria.min_price is not None:
            queryset = queryset.filter(price__gte=criteria.min_price)
        if criteria.max_price is not None:
            queryset = queryset.filter(price__lte=criteria.max_price)
        if criteria.in_stock is True:
            queryset = queryset.filter(available_quantity__gt=F("reserved_quantity"))
        elif criteria.in_stock is False:
            queryset = queryset.filter(available_quantity__lte=F("reserved_quantity"))
        return queryset.order_by("title", "id")

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=entity.id)
        return entity

    def get_for_update(self, id: str) -> Optional[Product]:
        return Product.objects.select_for_update().filter(id=id).first()

    def compare_and_set_stock(
        self, id: str, expected: StockLevels, new: StockLevels
    ) -> bool:
        updated = Product.objects.filter(
            id=id,
            available_quantity=expected.available,
            reserved_quantity=expected.reserved,
        ).update(
            available_quantity=new.available,
            reserved_quantity=new.reserved,
            updated_at=timezone.now(),
        )
        return updated == 1
