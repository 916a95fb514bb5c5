from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, DateTime, Integer, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum as PyEnum
from datetime import datetime
from coffeeshop.db import Base
from coffeeshop.models.common import IdMixin, UUIDMixin, TSMixin

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentMethod(PyEnum):
    CASH = "cash"
    TRANSFER = "transfer"

def _values(enum_cls):
    return [m.value for m in enum_cls]

# ── Admin & store config ────────────────────────────────────────────────────
class AdminUser(Base, IdMixin, TSMixin):
    __tablename__ = "admin_users"
    email: Mapped[str] = mapped_column(String(160), unique=True)
    password_hash: Mapped[str] = mapped_column(String(200))

class StoreConfig(Base, IdMixin, TSMixin):
    __tablename__ = "config"
    admin_whatsapp: Mapped[str] = mapped_column(String(20))
    store_name: Mapped[str] = mapped_column(String(160))
    currency: Mapped[str] = mapped_column(String(10))
    pickup_address: Mapped[str | None] = mapped_column(Text)
    pickup_coordinates: Mapped[str | None] = mapped_column(String(60))
    pickup_map_link: Mapped[str | None] = mapped_column(String(400))

# ── Catalog ─────────────────────────────────────────────────────────────────
class Coffee(Base, IdMixin, TSMixin):
    __tablename__ = "coffees"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(400))
    category: Mapped[str | None] = mapped_column(String(80))
    best_seller: Mapped[bool] = mapped_column(Boolean, default=False)

class CoffeeVariant(Base, TSMixin):
    __tablename__ = "coffee_variants"
    id: Mapped[str] = mapped_column(String(80), primary_key=True)  # "<coffee_id>-<size slug>"
    coffee_id: Mapped[int] = mapped_column(Integer, ForeignKey("coffees.id", ondelete="CASCADE"))
    size: Mapped[str] = mapped_column(String(40))
    price: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    original_price: Mapped[float | None] = mapped_column(Numeric(12, 2))
    stock: Mapped[int] = mapped_column(Integer, default=0)
    available: Mapped[bool] = mapped_column(Boolean, default=True)
    # denormalized from the recipe; kept in sync by services.costing
    cost_price: Mapped[float] = mapped_column(Numeric(14, 4), default=0)
    profit_amount: Mapped[float] = mapped_column(Numeric(14, 4), default=0)
    profit_percentage: Mapped[float] = mapped_column(Numeric(9, 4), default=0)

# ── Inventory & recipes ─────────────────────────────────────────────────────
class IngredientCategory(Base, IdMixin, TSMixin):
    __tablename__ = "ingredient_categories"
    name: Mapped[str] = mapped_column(String(120), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str] = mapped_column(String(10), default="#6B7280")

class Ingredient(Base, IdMixin, TSMixin):
    __tablename__ = "ingredients"
    name: Mapped[str] = mapped_column(String(160), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    unit: Mapped[str] = mapped_column(String(20))  # ml, g, pcs ...
    cost_per_unit: Mapped[float] = mapped_column(Numeric(14, 4))
    supplier: Mapped[str | None] = mapped_column(String(160))
    category_id: Mapped[int] = mapped_column(Integer, ForeignKey("ingredient_categories.id"))
    current_stock: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    minimum_stock: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    package_size: Mapped[float | None] = mapped_column(Numeric(12, 3))
    package_price: Mapped[float | None] = mapped_column(Numeric(12, 2))
    last_package_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

class IngredientPriceHistory(Base, IdMixin, TSMixin):
    __tablename__ = "ingredient_price_history"
    ingredient_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("ingredients.id", ondelete="SET NULL"))
    old_price: Mapped[float] = mapped_column(Numeric(14, 4))
    new_price: Mapped[float] = mapped_column(Numeric(14, 4))
    change_reason: Mapped[str | None] = mapped_column(Text)
    changed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("admin_users.id"))

class VariantRecipe(Base, IdMixin, TSMixin):
    __tablename__ = "variant_recipes"
    variant_id: Mapped[str] = mapped_column(String(80), ForeignKey("coffee_variants.id", ondelete="CASCADE"), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    serving_size: Mapped[float] = mapped_column(Numeric(10, 2))
    estimated_cost: Mapped[float] = mapped_column(Numeric(14, 4), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class RecipeIngredient(Base, IdMixin, TSMixin):
    __tablename__ = "recipe_ingredients"
    recipe_id: Mapped[int] = mapped_column(Integer, ForeignKey("variant_recipes.id", ondelete="CASCADE"))
    ingredient_id: Mapped[int] = mapped_column(Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"))
    quantity: Mapped[float] = mapped_column(Numeric(12, 3))
    cost: Mapped[float] = mapped_column(Numeric(14, 4), default=0)  # quantity * ingredient.cost_per_unit
    notes: Mapped[str | None] = mapped_column(Text)
    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient_pair"),
    )

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, UUIDMixin, TSMixin):
    __tablename__ = "orders"
    order_number: Mapped[str] = mapped_column(String(40), unique=True)
    customer_name: Mapped[str] = mapped_column(String(160))
    customer_phone: Mapped[str] = mapped_column(String(30))
    customer_notes: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[float] = mapped_column(Numeric(12, 2))
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, values_callable=_values), default=OrderStatus.PENDING
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, values_callable=_values), default=PaymentMethod.CASH
    )
    pickup_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    whatsapp_sent: Mapped[bool] = mapped_column(Boolean, default=False)

class OrderItem(Base, IdMixin, TSMixin):
    __tablename__ = "order_items"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id", ondelete="CASCADE"))
    coffee_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("coffees.id", ondelete="SET NULL"))
    variant_id: Mapped[str | None] = mapped_column(String(80), ForeignKey("coffee_variants.id", ondelete="SET NULL"))
    coffee_name: Mapped[str] = mapped_column(String(160))
    variant_size: Mapped[str | None] = mapped_column(String(40))
    price: Mapped[float] = mapped_column(Numeric(12, 2))
    quantity: Mapped[int] = mapped_column(Integer)
    subtotal: Mapped[float] = mapped_column(Numeric(12, 2))
    item_notes: Mapped[str | None] = mapped_column(Text)

class OrderAdditionalFee(Base, IdMixin, TSMixin):
    __tablename__ = "order_additional_fees"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id", ondelete="CASCADE"))
    fee_name: Mapped[str] = mapped_column(String(120))
    fee_amount: Mapped[float] = mapped_column(Numeric(12, 2))
