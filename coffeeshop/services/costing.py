"""Recipe costing.

Three levels of derived values hang off an ingredient's ``cost_per_unit``::

    recipe_ingredients.cost         = quantity * ingredient.cost_per_unit
    variant_recipes.estimated_cost  = sum(recipe_ingredients.cost)
    coffee_variants.cost_price      = estimated_cost (0 without a recipe)
    coffee_variants.profit_amount   = price - cost_price
    coffee_variants.profit_percentage = profit_amount / price * 100 (0 if price is 0)

Every write that touches an ingredient's cost or a recipe's ingredient list
goes through this module so those values never drift. The helpers only stage
changes on the session; the public ``propagate_*`` / ``recalculate_*``
functions own the commit.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coffeeshop.errors import CostPropagationError
from coffeeshop.models.core import CoffeeVariant, Ingredient, RecipeIngredient, VariantRecipe

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

STATUS_LADDER = ("excellent", "good", "average", "poor")


def _d(x) -> Decimal:
    if x is None:
        return ZERO
    if isinstance(x, Decimal):
        return x
    # go through str to avoid float binary artifacts
    return Decimal(str(x))


def package_cost_per_unit(package_size, package_price) -> Decimal:
    """Cost of one unit when buying by the package, rounded to 2 places."""
    size, price = _d(package_size), _d(package_price)
    if size <= 0 or price <= 0:
        raise ValueError("package size and price must be positive")
    return (price / size).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def line_cost(quantity, cost_per_unit) -> Decimal:
    return _d(quantity) * _d(cost_per_unit)


def profit_fields(price, cost_price) -> tuple[Decimal, Decimal]:
    price, cost_price = _d(price), _d(cost_price)
    profit = price - cost_price
    if price == 0:
        return profit, ZERO
    return profit, (profit / price * 100).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def profitability_status(profit_percentage, thresholds=(30, 20, 10, 0)) -> str:
    pct = float(profit_percentage or 0)
    for label, cut in zip(STATUS_LADDER, thresholds):
        if pct > float(cut):
            return label
    return "loss"


# ---------- staging helpers (no commit) ----------

def sync_variant(db: Session, variant_id: str, cost_price) -> CoffeeVariant | None:
    variant = db.get(CoffeeVariant, variant_id)
    if variant is None:
        logger.warning("recipe points at missing variant %s", variant_id)
        return None
    profit, pct = profit_fields(variant.price, cost_price)
    variant.cost_price = _d(cost_price)
    variant.profit_amount = profit
    variant.profit_percentage = pct
    return variant


def reset_variant(db: Session, variant_id: str) -> CoffeeVariant | None:
    """Put a variant back into the no-recipe state (cost 0)."""
    return sync_variant(db, variant_id, ZERO)


def refresh_variant_profit(variant: CoffeeVariant) -> None:
    """Re-derive profit fields after a price change, keeping cost_price."""
    profit, pct = profit_fields(variant.price, variant.cost_price)
    variant.profit_amount = profit
    variant.profit_percentage = pct


def refresh_recipe(db: Session, recipe_id: int) -> Decimal | None:
    recipe = db.get(VariantRecipe, recipe_id)
    if recipe is None:
        return None
    db.flush()
    total = db.query(func.coalesce(func.sum(RecipeIngredient.cost), 0)).filter(
        RecipeIngredient.recipe_id == recipe_id
    ).scalar()
    total = _d(total)
    recipe.estimated_cost = total
    sync_variant(db, recipe.variant_id, total)
    return total


def stage_association_cost(db: Session, assoc: RecipeIngredient) -> Decimal:
    ingredient = db.get(Ingredient, assoc.ingredient_id)
    if ingredient is None:
        raise LookupError(f"ingredient {assoc.ingredient_id} not found")
    assoc.cost = line_cost(assoc.quantity, ingredient.cost_per_unit)
    return assoc.cost


# ---------- entry points ----------

def propagate_ingredient_cost(db: Session, ingredient_id: int) -> dict:
    """Push an ingredient's (already committed) cost down to recipes and variants.

    The whole fan-out commits as one transaction. On failure it is rolled
    back and ``CostPropagationError`` is raised; the ingredient row itself is
    untouched either way.
    """
    try:
        ingredient = db.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise CostPropagationError(ingredient_id, "ingredient not found")
        cpu = _d(ingredient.cost_per_unit)

        assocs = db.query(RecipeIngredient).filter(RecipeIngredient.ingredient_id == ingredient_id).all()
        recipe_ids: set[int] = set()
        for a in assocs:
            a.cost = line_cost(a.quantity, cpu)
            recipe_ids.add(a.recipe_id)

        for rid in sorted(recipe_ids):
            refresh_recipe(db, rid)

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("cost propagation failed for ingredient %s", ingredient_id)
        raise CostPropagationError(ingredient_id, str(e)) from e

    logger.info(
        "propagated ingredient %s cost %s to %d associations / %d recipes",
        ingredient_id, cpu, len(assocs), len(recipe_ids),
    )
    return {"associations": len(assocs), "recipes": len(recipe_ids)}


def recalculate_recipe(db: Session, recipe_id: int) -> Decimal | None:
    """Recompute every association of one recipe from current ingredient costs."""
    try:
        recipe = db.get(VariantRecipe, recipe_id)
        if recipe is None:
            return None
        for a in db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == recipe_id).all():
            stage_association_cost(db, a)
        total = refresh_recipe(db, recipe_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("recipe %s recalculation failed", recipe_id)
        raise CostPropagationError(None, str(e)) from e
    return total


def recalculate_all(db: Session) -> dict:
    """Rebuild the whole cost chain. Safe to re-run; used to repair drift."""
    try:
        costs = dict(db.query(Ingredient.id, Ingredient.cost_per_unit).all())
        assocs = db.query(RecipeIngredient).all()
        for a in assocs:
            a.cost = line_cost(a.quantity, costs.get(a.ingredient_id))
        recipes = db.query(VariantRecipe.id).all()
        for (rid,) in recipes:
            refresh_recipe(db, rid)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("full cost recalculation failed")
        raise CostPropagationError(None, str(e)) from e
    logger.info("recalculated %d associations across %d recipes", len(assocs), len(recipes))
    return {"associations": len(assocs), "recipes": len(recipes)}
