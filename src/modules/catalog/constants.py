"""Catalog domain constants.

``CatalogErrorCode`` is the canonical error taxonomy of the catalog
capability surface; every catalog failure carries one of these codes.
"""

from django.db import models


class InventoryOperation(models.TextChoices):
    RESERVE = "RESERVE", "Reserve"
    RELEASE = "RELEASE", "Release"
    DEDUCT = "DEDUCT", "Deduct"


class CatalogErrorCode(models.TextChoices):
    INVALID_INPUT = "INVALID_INPUT", "Invalid input"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND", "Product not found"
    DATABASE_ERROR = "DATABASE_ERROR", "Database error"
    CALCULATION_ERROR = "CALCULATION_ERROR", "Calculation error"
    UPDATE_FAILED = "UPDATE_FAILED", "Update failed"


PRODUCT_ID_MAX_LENGTH = 32
