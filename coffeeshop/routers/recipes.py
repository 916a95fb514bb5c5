import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from coffeeshop.db import get_db
from coffeeshop.deps import require_admin
from coffeeshop.models.core import CoffeeVariant, Ingredient, RecipeIngredient, VariantRecipe
from coffeeshop.schemas.inventory import (
    RecipeIn, RecipeOut, RecipeIngredientIn, RecipeIngredientOut, RecipeIngredientUpdate,
)
from coffeeshop.services import costing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["recipes"])

# ---------- recipes ----------

@router.post("/recipes", status_code=201)
def create_recipe(body: RecipeIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.variant_id or not body.name or not body.serving_size:
        raise HTTPException(400, detail="variant_id, name, and serving_size are required")
    if not db.get(CoffeeVariant, body.variant_id):
        raise HTTPException(404, detail="Variant not found")
    if db.query(VariantRecipe).filter(VariantRecipe.variant_id == body.variant_id).first():
        raise HTTPException(400, detail="Recipe already exists for this variant. Use PUT to update.")
    r = VariantRecipe(
        variant_id=body.variant_id, name=body.name, description=body.description,
        serving_size=body.serving_size, estimated_cost=0, is_active=True,
    )
    db.add(r); db.commit(); db.refresh(r)
    return {"recipe": RecipeOut.model_validate(r)}

@router.put("/recipes/{recipe_id}")
def update_recipe(recipe_id: int, body: RecipeIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.name or not body.serving_size:
        raise HTTPException(400, detail="name and serving_size are required")
    r = db.get(VariantRecipe, recipe_id)
    if not r:
        raise HTTPException(404, detail="Recipe not found")
    r.name = body.name
    r.description = body.description
    r.serving_size = body.serving_size
    db.commit(); db.refresh(r)
    return {"recipe": RecipeOut.model_validate(r)}

@router.delete("/recipes/{recipe_id}")
def delete_recipe(recipe_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    r = db.get(VariantRecipe, recipe_id)
    if not r:
        raise HTTPException(404, detail="Recipe not found")
    variant_id = r.variant_id
    db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == recipe_id).delete()
    db.delete(r)
    costing.reset_variant(db, variant_id)
    db.commit()
    logger.info("deleted recipe %s, variant %s back to zero cost", recipe_id, variant_id)
    return {"message": "Recipe deleted successfully"}

@router.post("/recipes/recalculate")
def recalculate_everything(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    return {"ok": True, **costing.recalculate_all(db)}

@router.post("/recipes/{recipe_id}/recalculate")
def recalculate_one(recipe_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    total = costing.recalculate_recipe(db, recipe_id)
    if total is None:
        raise HTTPException(404, detail="Recipe not found")
    return {"ok": True, "estimated_cost": float(total)}

# ---------- recipe lines ----------

def _commit_line(db: Session, a: RecipeIngredient) -> RecipeIngredient:
    costing.refresh_recipe(db, a.recipe_id)
    db.commit(); db.refresh(a)
    return a

@router.post("/recipe-ingredients", status_code=201)
def add_recipe_ingredient(body: RecipeIngredientIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.recipe_id or not body.ingredient_id or not body.quantity or body.quantity <= 0:
        raise HTTPException(400, detail="recipe_id, ingredient_id, and valid quantity are required")
    if not db.get(VariantRecipe, body.recipe_id):
        raise HTTPException(404, detail="Recipe not found")
    dup = (db.query(RecipeIngredient)
             .filter(RecipeIngredient.recipe_id == body.recipe_id,
                     RecipeIngredient.ingredient_id == body.ingredient_id)
             .first())
    if dup:
        raise HTTPException(400, detail="This ingredient is already in the recipe. Update the existing one instead.")
    if not db.get(Ingredient, body.ingredient_id):
        raise HTTPException(404, detail="Ingredient not found")

    a = RecipeIngredient(
        recipe_id=body.recipe_id, ingredient_id=body.ingredient_id, quantity=body.quantity, notes=body.notes,
    )
    costing.stage_association_cost(db, a)
    db.add(a)
    return {"recipe_ingredient": RecipeIngredientOut.model_validate(_commit_line(db, a))}

@router.put("/recipe-ingredients/{line_id}")
def update_recipe_ingredient(
    line_id: int, body: RecipeIngredientUpdate, db: Session = Depends(get_db), admin_id: int = Depends(require_admin),
):
    if body.quantity is None or body.quantity <= 0:
        raise HTTPException(400, detail="Valid quantity is required")
    a = db.get(RecipeIngredient, line_id)
    if not a:
        raise HTTPException(404, detail="Recipe ingredient not found")
    a.quantity = body.quantity
    a.notes = body.notes
    costing.stage_association_cost(db, a)
    return {"recipe_ingredient": RecipeIngredientOut.model_validate(_commit_line(db, a))}

@router.delete("/recipe-ingredients/{line_id}")
def delete_recipe_ingredient(line_id: int, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    a = db.get(RecipeIngredient, line_id)
    if not a:
        raise HTTPException(404, detail="Recipe ingredient not found")
    recipe_id = a.recipe_id
    db.delete(a)
    costing.refresh_recipe(db, recipe_id)
    db.commit()
    return {"message": "Recipe ingredient deleted successfully"}
