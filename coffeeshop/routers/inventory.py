import logging
from decimal import Decimal, ROUND_HALF_UP

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from coffeeshop.db import get_db
from coffeeshop.deps import require_admin, get_store_config
from coffeeshop.errors import CostPropagationError
from coffeeshop.models.common import utcnow
from coffeeshop.models.core import (
    Ingredient, IngredientCategory, IngredientPriceHistory, RecipeIngredient,
)
from coffeeshop.schemas.common import StoreSettings
from coffeeshop.schemas.inventory import CategoryIn, IngredientIn
from coffeeshop.services import costing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/ingredients", tags=["inventory"])

COST_SCALE = Decimal("0.0001")  # ingredients.cost_per_unit is Numeric(14, 4)

def _num(x) -> str:
    return f"{Decimal(str(x)).normalize():f}"

def _ingredient_dict(i: Ingredient, cat: IngredientCategory | None = None) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "description": i.description,
        "unit": i.unit,
        "cost_per_unit": float(i.cost_per_unit or 0),
        "supplier": i.supplier,
        "category_id": i.category_id,
        "category_name": cat.name if cat else None,
        "category_color": cat.color if cat else None,
        "current_stock": float(i.current_stock or 0),
        "minimum_stock": float(i.minimum_stock or 0),
        "is_active": bool(i.is_active),
        "package_size": float(i.package_size) if i.package_size is not None else None,
        "package_price": float(i.package_price) if i.package_price is not None else None,
        "last_package_update": i.last_package_update.isoformat() if i.last_package_update else None,
    }

def _package_costing(body: IngredientIn) -> bool:
    return bool(body.use_auto_calculate and (body.package_size or 0) > 0 and (body.package_price or 0) > 0)

def _validate(body: IngredientIn, db: Session) -> None:
    # a package price stands in for cost_per_unit
    has_cost = body.cost_per_unit is not None or _package_costing(body)
    if not body.name or not body.unit or not has_cost or body.category_id is None:
        raise HTTPException(400, detail="Name, unit, cost_per_unit, and category_id are required")
    if not db.get(IngredientCategory, body.category_id):
        raise HTTPException(400, detail="Category not found")

def _resolve_cost(body: IngredientIn) -> Decimal:
    if _package_costing(body):
        return costing.package_cost_per_unit(body.package_size, body.package_price)
    # match the column scale so an unchanged re-save compares equal
    return Decimal(str(body.cost_per_unit)).quantize(COST_SCALE, rounding=ROUND_HALF_UP)

def _apply(i: Ingredient, body: IngredientIn, cost: Decimal) -> None:
    packaged = _package_costing(body)
    i.name = body.name
    i.description = body.description
    i.unit = body.unit
    i.cost_per_unit = cost
    i.supplier = body.supplier
    i.category_id = body.category_id
    i.minimum_stock = body.minimum_stock or 0
    i.current_stock = body.current_stock or 0
    i.is_active = True if body.is_active is None else body.is_active
    i.package_size = body.package_size if packaged else None
    i.package_price = body.package_price if packaged else None
    i.last_package_update = utcnow() if packaged else None


# ---------- categories ----------

@router.get("/categories")
def list_categories(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    rows = db.query(IngredientCategory).order_by(IngredientCategory.name.asc()).all()
    return {"categories": [
        {"id": c.id, "name": c.name, "description": c.description, "color": c.color} for c in rows
    ]}

@router.post("/categories", status_code=201)
def create_category(body: CategoryIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.name:
        raise HTTPException(400, detail="Name is required")
    if db.query(IngredientCategory).filter(IngredientCategory.name == body.name).first():
        raise HTTPException(400, detail="Category with this name already exists")
    c = IngredientCategory(name=body.name, description=body.description, color=body.color or "#6B7280")
    db.add(c); db.commit(); db.refresh(c)
    return {"category": {"id": c.id, "name": c.name, "description": c.description, "color": c.color}}


# ---------- stock levels ----------

@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    rows = (
        db.query(Ingredient, IngredientCategory)
          .outerjoin(IngredientCategory, IngredientCategory.id == Ingredient.category_id)
          .filter(Ingredient.is_active.is_(True), Ingredient.current_stock <= Ingredient.minimum_stock)
          .order_by(Ingredient.name.asc())
          .all()
    )
    return {"ingredients": [_ingredient_dict(i, c) for i, c in rows]}


# ---------- ingredients ----------

@router.get("")
def list_ingredients(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    rows = (
        db.query(Ingredient, IngredientCategory)
          .outerjoin(IngredientCategory, IngredientCategory.id == Ingredient.category_id)
          .order_by(Ingredient.name.asc())
          .all()
    )
    return {"ingredients": [_ingredient_dict(i, c) for i, c in rows]}

@router.post("", status_code=201)
def create_ingredient(
    body: IngredientIn,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    cfg: StoreSettings = Depends(get_store_config),
):
    _validate(body, db)
    if db.query(Ingredient).filter(Ingredient.name == body.name).first():
        raise HTTPException(400, detail="Ingredient with this name already exists")

    cost = _resolve_cost(body)
    i = Ingredient()
    _apply(i, body, cost)
    db.add(i); db.flush()
    if _package_costing(body):
        db.add(IngredientPriceHistory(
            ingredient_id=i.id,
            old_price=0,
            new_price=cost,
            change_reason=(
                f"Initial price auto-calculated from package: "
                f"{_num(body.package_size)}{body.unit} @ {cfg.currency}{_num(body.package_price)}"
            ),
            changed_by=admin_id,
        ))
    db.commit(); db.refresh(i)
    logger.info("created ingredient %s (%s) cost_per_unit=%s", i.id, i.name, cost)
    return {"ingredient": _ingredient_dict(i, db.get(IngredientCategory, i.category_id))}

@router.put("/{ingredient_id}")
def update_ingredient(
    ingredient_id: int,
    body: IngredientIn,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    cfg: StoreSettings = Depends(get_store_config),
):
    """Update an ingredient, then push a cost change through recipes and variants.

    The ingredient write commits first. Cost propagation runs as its own
    transaction; if it fails the response still carries the updated
    ingredient, with ``recalculation.ok`` false.
    """
    _validate(body, db)
    i = db.get(Ingredient, ingredient_id)
    if not i:
        raise HTTPException(404, detail="Ingredient not found")
    clash = (db.query(Ingredient)
               .filter(Ingredient.name == body.name, Ingredient.id != ingredient_id)
               .first())
    if clash:
        raise HTTPException(400, detail="Another ingredient with this name already exists")

    old = Decimal(str(i.cost_per_unit))
    cost = _resolve_cost(body)
    if old != cost:
        reason = (
            f"Auto-calculated from package: {_num(body.package_size)}{body.unit} @ {cfg.currency}{_num(body.package_price)}"
            if _package_costing(body) else "Manual update via admin panel"
        )
        db.add(IngredientPriceHistory(
            ingredient_id=i.id, old_price=old, new_price=cost, change_reason=reason, changed_by=admin_id,
        ))
    _apply(i, body, cost)
    db.commit(); db.refresh(i)
    out = _ingredient_dict(i, db.get(IngredientCategory, i.category_id))

    try:
        recalc = {"ok": True, **costing.propagate_ingredient_cost(db, ingredient_id)}
    except CostPropagationError as e:
        logger.error("ingredient %s saved but cost propagation failed: %s", ingredient_id, e.message)
        recalc = {"ok": False, "error": "Cost recalculation failed"}
    return {"ingredient": out, "recalculation": recalc}

@router.delete("/{ingredient_id}")
def delete_ingredient(ingredient_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    i = db.get(Ingredient, ingredient_id)
    if not i:
        raise HTTPException(404, detail="Ingredient not found")
    in_use = db.query(RecipeIngredient.id).filter(RecipeIngredient.ingredient_id == ingredient_id).first()
    if in_use:
        raise HTTPException(
            400,
            detail="Cannot delete ingredient that is used in recipes. Please remove it from all recipes first.",
        )
    # history rows outlive the ingredient, detached from it
    (db.query(IngredientPriceHistory)
       .filter(IngredientPriceHistory.ingredient_id == ingredient_id)
       .update({IngredientPriceHistory.ingredient_id: None}, synchronize_session=False))
    db.delete(i)
    db.commit()
    return {"message": "Ingredient deleted successfully"}

@router.get("/{ingredient_id}/price-history")
def price_history(ingredient_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not db.get(Ingredient, ingredient_id):
        raise HTTPException(404, detail="Ingredient not found")
    rows = (
        db.query(IngredientPriceHistory)
          .filter(IngredientPriceHistory.ingredient_id == ingredient_id)
          .order_by(IngredientPriceHistory.created_at.desc(), IngredientPriceHistory.id.desc())
          .all()
    )
    return {"history": [{
        "id": h.id,
        "ingredient_id": h.ingredient_id,
        "old_price": float(h.old_price),
        "new_price": float(h.new_price),
        "change_reason": h.change_reason,
        "changed_by": h.changed_by,
        "created_at": h.created_at.isoformat() if h.created_at else None,
    } for h in rows]}
