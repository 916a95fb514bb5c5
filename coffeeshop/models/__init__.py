# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, PaymentMethod,

    # Admin & store config
    AdminUser, StoreConfig,

    # Catalog
    Coffee, CoffeeVariant,

    # Inventory & recipes
    IngredientCategory, Ingredient, IngredientPriceHistory, VariantRecipe, RecipeIngredient,

    # Orders
    Order, OrderItem, OrderAdditionalFee,
)

__all__ = [
    "OrderStatus", "PaymentMethod",
    "AdminUser", "StoreConfig",
    "Coffee", "CoffeeVariant",
    "IngredientCategory", "Ingredient", "IngredientPriceHistory", "VariantRecipe", "RecipeIngredient",
    "Order", "OrderItem", "OrderAdditionalFee",
]
