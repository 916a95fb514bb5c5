from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional, Literal

OrderStatusLiteral = Literal["pending", "confirmed", "preparing", "ready", "completed", "cancelled"]
PaymentMethodLiteral = Literal["cash", "transfer"]

class OrderItemIn(BaseModel):
    coffee_id: Optional[int] = None
    variant_id: Optional[str] = None
    coffee_name: str
    variant_size: Optional[str] = None
    price: float
    quantity: int
    item_notes: Optional[str] = None

class FeeIn(BaseModel):
    fee_name: Optional[str] = None
    fee_amount: Optional[float] = None

class CheckoutIn(BaseModel):
    """Storefront checkout; status is always pending."""
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_notes: Optional[str] = None
    items: List[OrderItemIn] = []
    total_amount: Optional[float] = None
    payment_method: PaymentMethodLiteral = "cash"
    pickup_time: Optional[datetime] = None

class ManualOrderIn(CheckoutIn):
    additional_fees: List[FeeIn] = []
    # plain str so bad values get the same 400 message as updates
    status: str = "pending"
    payment_method: str = "cash"

class OrderUpdateIn(BaseModel):
    # fields left out of the payload are not touched
    status: Optional[str] = None
    customer_notes: Optional[str] = None
    payment_method: Optional[str] = None
    pickup_time: Optional[datetime] = None
    items: Optional[List[OrderItemIn]] = None
    additional_fees: Optional[List[FeeIn]] = None
    total_amount: Optional[float] = None

class OrderItemOut(BaseModel):
    id: int
    variant_id: Optional[str] = None
    coffee_name: str
    variant_size: Optional[str] = None
    price: float
    quantity: int
    subtotal: float
    item_notes: Optional[str] = None

class FeeOut(BaseModel):
    id: int
    fee_name: str
    fee_amount: float

class OrderOut(BaseModel):
    id: str
    order_number: str
    customer_name: str
    customer_phone: str
    customer_notes: Optional[str] = None
    total_amount: float
    status: OrderStatusLiteral
    payment_method: PaymentMethodLiteral
    pickup_time: Optional[datetime] = None
    whatsapp_sent: bool
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    additional_fees: List[FeeOut] = []
