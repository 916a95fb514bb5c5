import re

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from coffeeshop.db import get_db
from coffeeshop.deps import require_admin, load_store_config
from coffeeshop.schemas.common import StoreSettings, StoreSettingsIn

router = APIRouter(prefix="/admin/config", tags=["settings"])

WHATSAPP_RE = re.compile(r"^\d{10,15}$")
COORDS_RE = re.compile(r"^-?\d+\.?\d*,\s*-?\d+\.?\d*$")

@router.get("", response_model=StoreSettings)
def get_config(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    return load_store_config(db)

@router.put("", response_model=StoreSettings)
def update_config(body: StoreSettingsIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    data = body.model_dump()
    if not all(v for v in data.values()):
        raise HTTPException(400, detail="All fields are required")
    if not WHATSAPP_RE.match(data["admin_whatsapp"]):
        raise HTTPException(400, detail="Invalid WhatsApp number format")
    if not COORDS_RE.match(data["pickup_coordinates"]):
        raise HTTPException(400, detail="Invalid coordinates format. Use: latitude, longitude")
    if not data["pickup_map_link"].startswith("http"):
        raise HTTPException(400, detail="Invalid map link format")

    row = load_store_config(db)
    for k, v in data.items():
        setattr(row, k, v)
    db.commit(); db.refresh(row)
    return row
