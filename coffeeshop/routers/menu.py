import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from coffeeshop.db import get_db
from coffeeshop.deps import require_admin, get_store_config
from coffeeshop.models.core import (
    Coffee,
    CoffeeVariant,
    Ingredient,
    RecipeIngredient,
    VariantRecipe,
)
from coffeeshop.schemas.catalog import BulkStockIn, CoffeeIn, StockIn, VariantIn
from coffeeshop.schemas.common import StoreSettings
from coffeeshop.services import costing

logger = logging.getLogger(__name__)

router = APIRouter(tags=["menu"])


# ---------- helpers ----------

def _as_float(val: Decimal | float | int | None) -> float | None:
    if val is None:
        return None
    return float(val)

def _ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()

def variant_id_for(coffee_id: int, size: str) -> str:
    slug = re.sub(r"\s+", "", size.lower())
    return f"{coffee_id}-{slug}"

def _variant_dict(v: CoffeeVariant) -> dict:
    return {
        "id": v.id,
        "coffee_id": v.coffee_id,
        "size": v.size,
        "price": _as_float(v.price),
        "original_price": _as_float(v.original_price),
        "stock": v.stock,
        "available": bool(v.available),
        "cost_price": _as_float(v.cost_price) or 0.0,
        "profit_amount": _as_float(v.profit_amount) or 0.0,
        "profit_percentage": _as_float(v.profit_percentage) or 0.0,
    }

def _variants_by_coffee(db: Session) -> dict[int, list[CoffeeVariant]]:
    out: dict[int, list[CoffeeVariant]] = {}
    for v in db.query(CoffeeVariant).order_by(CoffeeVariant.coffee_id, CoffeeVariant.price).all():
        out.setdefault(v.coffee_id, []).append(v)
    return out

def _drop_variants(db: Session, variant_ids: List[str]) -> None:
    """Delete variants together with their recipes and recipe lines."""
    if not variant_ids:
        return
    recipe_ids = [rid for (rid,) in db.query(VariantRecipe.id).filter(VariantRecipe.variant_id.in_(variant_ids)).all()]
    if recipe_ids:
        db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id.in_(recipe_ids)).delete(synchronize_session=False)
        db.query(VariantRecipe).filter(VariantRecipe.id.in_(recipe_ids)).delete(synchronize_session=False)
    db.query(CoffeeVariant).filter(CoffeeVariant.id.in_(variant_ids)).delete(synchronize_session=False)

def _apply_variant(v: CoffeeVariant, body: VariantIn) -> None:
    price_changed = v.price is None or Decimal(str(v.price)) != Decimal(str(body.price))
    v.size = body.size
    v.price = body.price
    v.original_price = body.original_price
    v.stock = body.stock or 0
    v.available = body.available
    if price_changed:
        costing.refresh_variant_profit(v)


# ---------- storefront ----------

@router.get("/coffees")
def storefront(db: Session = Depends(get_db), cfg: StoreSettings = Depends(get_store_config)):
    """Menu for the ordering page, with the store config camel-cased for the client."""
    variants = _variants_by_coffee(db)
    coffees = []
    for c in db.query(Coffee).order_by(Coffee.id).all():
        vs = [{
            "id": v.id,
            "size": v.size,
            "price": _as_float(v.price),
            "originalPrice": _as_float(v.original_price),
            "stock": v.stock,
            "available": bool(v.available) and (v.stock or 0) > 0,
        } for v in variants.get(c.id, [])]
        coffees.append({
            "id": c.id,
            "name": c.name,
            "description": c.description,
            "image": c.image,
            "available": any(v["available"] for v in vs),
            "category": c.category,
            "bestSeller": bool(c.best_seller),
            "variants": vs,
        })
    return {
        "config": {
            "adminWhatsApp": cfg.admin_whatsapp,
            "storeName": cfg.store_name,
            "currency": cfg.currency,
            "pickupLocation": {
                "address": cfg.pickup_address,
                "coordinates": cfg.pickup_coordinates,
                "mapLink": cfg.pickup_map_link,
            },
        },
        "coffees": coffees,
    }


# ---------- admin products ----------

@router.get("/admin/products")
def list_products(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    variants = _variants_by_coffee(db)
    out = []
    for c in db.query(Coffee).order_by(Coffee.id).all():
        out.append({
            "id": c.id,
            "name": c.name,
            "description": c.description,
            "image": c.image,
            "category": c.category,
            "best_seller": bool(c.best_seller),
            "created_at": _ts(c.created_at),
            "variants": [_variant_dict(v) for v in variants.get(c.id, [])],
        })
    return {"coffees": out}

@router.post("/admin/products")
def create_product(body: CoffeeIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    c = Coffee(
        name=body.name, description=body.description, image=body.image,
        category=body.category, best_seller=body.best_seller,
    )
    db.add(c); db.flush()
    for vb in body.variants:
        v = CoffeeVariant(id=vb.id or variant_id_for(c.id, vb.size), coffee_id=c.id, cost_price=0)
        _apply_variant(v, vb)
        db.add(v)
    db.commit(); db.refresh(c)
    logger.info("created coffee %s with %d variants", c.id, len(body.variants))
    return {"success": True, "id": c.id}

@router.put("/admin/products/{coffee_id}")
def update_product(coffee_id: int, body: CoffeeIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    c = db.get(Coffee, coffee_id)
    if not c:
        raise HTTPException(404, detail="Product not found")
    c.name = body.name
    c.description = body.description
    c.image = body.image
    c.category = body.category
    c.best_seller = body.best_seller

    existing = {v.id: v for v in db.query(CoffeeVariant).filter(CoffeeVariant.coffee_id == coffee_id).all()}
    keep = set()
    for vb in body.variants:
        vid = vb.id or variant_id_for(coffee_id, vb.size)
        keep.add(vid)
        v = existing.get(vid)
        if v is None:
            v = CoffeeVariant(id=vid, coffee_id=coffee_id, cost_price=0)
            db.add(v)
        _apply_variant(v, vb)
    _drop_variants(db, [vid for vid in existing if vid not in keep])
    db.commit()
    return {"success": True}

@router.delete("/admin/products/{coffee_id}")
def delete_product(coffee_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    c = db.get(Coffee, coffee_id)
    if not c:
        raise HTTPException(404, detail="Product not found")
    vids = [vid for (vid,) in db.query(CoffeeVariant.id).filter(CoffeeVariant.coffee_id == coffee_id).all()]
    _drop_variants(db, vids)
    db.delete(c)
    db.commit()
    logger.info("deleted coffee %s and %d variants", coffee_id, len(vids))
    return {"success": True}


# ---------- stock ----------

def _set_stock(db: Session, body: StockIn) -> bool:
    v = db.get(CoffeeVariant, body.variant_id)
    if not v:
        return False
    v.stock = body.stock
    v.available = body.available if body.available is not None else body.stock > 0
    return True

@router.put("/admin/stock")
def update_stock(body: StockIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.variant_id or body.stock is None:
        raise HTTPException(400, detail="Variant ID and stock are required")
    if not _set_stock(db, body):
        raise HTTPException(404, detail="Variant not found")
    db.commit()
    return {"success": True}

@router.post("/admin/stock/bulk")
def bulk_update_stock(body: BulkStockIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    updated = 0
    for u in body.updates:
        if not u.variant_id or u.stock is None:
            continue
        if _set_stock(db, u):
            updated += 1
    db.commit()
    return {"success": True, "updated": updated}


# ---------- variant detail ----------

@router.get("/admin/variants/{variant_id}")
def variant_detail(variant_id: str, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    row = (
        db.query(CoffeeVariant, Coffee.name)
          .join(Coffee, Coffee.id == CoffeeVariant.coffee_id)
          .filter(CoffeeVariant.id == variant_id)
          .first()
    )
    if not row:
        raise HTTPException(404, detail="Variant not found")
    v, coffee_name = row

    recipe_out = None
    r = db.query(VariantRecipe).filter(VariantRecipe.variant_id == variant_id).first()
    if r:
        lines = (
            db.query(RecipeIngredient, Ingredient)
              .join(Ingredient, Ingredient.id == RecipeIngredient.ingredient_id)
              .filter(RecipeIngredient.recipe_id == r.id)
              .order_by(RecipeIngredient.id)
              .all()
        )
        recipe_out = {
            "id": r.id,
            "variant_id": r.variant_id,
            "name": r.name,
            "description": r.description,
            "serving_size": _as_float(r.serving_size),
            "estimated_cost": _as_float(r.estimated_cost) or 0.0,
            "is_active": bool(r.is_active),
            "ingredients": [{
                "id": a.id,
                "ingredient_id": a.ingredient_id,
                "ingredient_name": ing.name,
                "ingredient_unit": ing.unit,
                "ingredient_cost_per_unit": _as_float(ing.cost_per_unit),
                "quantity": _as_float(a.quantity),
                "cost": _as_float(a.cost) or 0.0,
                "notes": a.notes,
            } for a, ing in lines],
        }

    return {"variant": {**_variant_dict(v), "coffee_name": coffee_name}, "recipe": recipe_out}
