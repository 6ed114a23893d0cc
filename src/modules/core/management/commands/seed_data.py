from __future__ import annotations

import random
from decimal import Decimal

from django.core.management.base import BaseCommand

from modules.catalog.models import Product
from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.catalog.services import CatalogService
from modules.core.exceptions import DomainError
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, ShippingAddressDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

BOOKS = [
    ("B1", "The Pragmatic Programmer", "Andrew Hunt", "Software", Decimal("10.00")),
    ("B2", "Clean Code", "Robert C. Martin", "Software", Decimal("34.99")),
    ("B3", "Designing Data-Intensive Applications", "Martin Kleppmann", "Software", Decimal("45.50")),
    ("B4", "Dune", "Frank Herbert", "Science Fiction", Decimal("12.99")),
    ("B5", "Foundation", "Isaac Asimov", "Science Fiction", Decimal("9.99")),
    ("B6", "Neuromancer", "William Gibson", "Science Fiction", Decimal("11.25")),
    ("B7", "Pride and Prejudice", "Jane Austen", "Classics", Decimal("7.50")),
    ("B8", "Moby-Dick", "Herman Melville", "Classics", Decimal("8.75")),
    ("B9", "Sapiens", "Yuval Noah Harari", "History", Decimal("18.00")),
    ("B10", "The Guns of August", "Barbara W. Tuchman", "History", Decimal("16.40")),
    ("B11", "Gödel, Escher, Bach", "Douglas Hofstadter", "Science", Decimal("24.95")),
    ("B12", "Forthcoming Title", "Unknown", "Preorder", None),
]

CUSTOMERS = ["CUST-001", "CUST-002", "CUST-003", "CUST-004", "CUST-005"]


class Command(BaseCommand):
    help = "Seed database with a sample bookstore catalog and orders."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=20)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        products = self._seed_products()
        orders_created = self._seed_orders(products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: products={len(products)}, orders={orders_created}"
            )
        )

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for product_id, title, author, category, price in BOOKS:
            product, _ = Product.objects.get_or_create(
                id=product_id,
                defaults={
                    "title": title,
                    "author": author,
                    "category": category,
                    "price": price,
                    "available_quantity": random.randint(10, 200),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, products: list[Product], count: int) -> int:
        """Create orders through the service so reservations stay consistent."""
        self.stdout.write("Creating orders...")
        priced = [p for p in products if p.price is not None]
        if not priced:
            self.stdout.write(self.style.WARNING("Skipping orders (no priced products)."))
            return 0

        service = OrderService(
            order_repository=OrderDjangoRepository(),
            catalog_service=CatalogService(repository=ProductDjangoRepository()),
        )
        paths = [
            [],
            [OrderStatus.CONFIRMED],
            [OrderStatus.CONFIRMED, OrderStatus.SHIPPED],
            [OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED],
            [OrderStatus.CANCELLED],
        ]

        created = 0
        for i in range(count):
            dto = CreateOrderDTO(
                customer_id=random.choice(CUSTOMERS),
                payment_method="CREDIT_CARD",
                shipping_address=ShippingAddressDTO(
                    street=f"{100 + i} Main St", city="Springfield", zip="12345"
                ),
                items=[
                    CreateOrderItemDTO(product_id=p.id, quantity=random.randint(1, 3))
                    for p in random.sample(priced, k=random.randint(1, 3))
                ],
                idempotency_key=f"seed-{i + 1}",
            )
            try:
                order = service.create_order(dto)
                for next_status in random.choice(paths):
                    order = service.update_status(order.id, next_status, "Seed data")
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Order {i + 1} skipped: {exc.message}"))
                continue
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
