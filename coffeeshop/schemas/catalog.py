from pydantic import BaseModel
from typing import List, Optional

class VariantIn(BaseModel):
    id: Optional[str] = None
    size: str
    price: float
    original_price: Optional[float] = None
    stock: int = 0
    available: bool = True

class CoffeeIn(BaseModel):
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    best_seller: bool = False
    variants: List[VariantIn] = []

class StockIn(BaseModel):
    variant_id: Optional[str] = None
    stock: Optional[int] = None
    available: Optional[bool] = None

class BulkStockIn(BaseModel):
    updates: List[StockIn]
