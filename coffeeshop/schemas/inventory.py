from pydantic import BaseModel
from typing import Optional

class CategoryIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

class IngredientIn(BaseModel):
    # all optional so missing fields come back as 400 with a message
    name: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    cost_per_unit: Optional[float] = None
    supplier: Optional[str] = None
    category_id: Optional[int] = None
    minimum_stock: Optional[float] = None
    current_stock: Optional[float] = None
    is_active: Optional[bool] = None
    package_size: Optional[float] = None
    package_price: Optional[float] = None
    use_auto_calculate: bool = False

class RecipeIn(BaseModel):
    variant_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    serving_size: Optional[float] = None

class RecipeOut(BaseModel):
    id: int
    variant_id: str
    name: str
    description: Optional[str] = None
    serving_size: float
    estimated_cost: float
    is_active: bool

    model_config = {"from_attributes": True}

class RecipeIngredientIn(BaseModel):
    recipe_id: Optional[int] = None
    ingredient_id: Optional[int] = None
    quantity: Optional[float] = None
    notes: Optional[str] = None

class RecipeIngredientUpdate(BaseModel):
    quantity: Optional[float] = None
    notes: Optional[str] = None

class RecipeIngredientOut(BaseModel):
    id: int
    recipe_id: int
    ingredient_id: int
    quantity: float
    cost: float
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
