import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from coffeeshop.config import settings
from coffeeshop.db import get_db
from coffeeshop.models.core import AdminUser, StoreConfig
from coffeeshop.schemas.common import StoreSettings
from coffeeshop.util.security import decode_session_token

logger = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)

def require_admin(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> int:
    """Resolve the admin id from the session cookie (or a bearer token for scripts)."""
    token = request.cookies.get(settings.SESSION_COOKIE) or (creds.credentials if creds else None)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        admin_id = decode_session_token(token)
    except jwt.InvalidTokenError as e:
        logger.warning("rejected session token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not db.get(AdminUser, admin_id):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return admin_id

def load_store_config(db: Session) -> StoreConfig:
    """Return the single config row, seeding it from settings on first use."""
    row = db.query(StoreConfig).order_by(StoreConfig.id).first()
    if row is None:
        row = StoreConfig(
            admin_whatsapp=settings.STORE_WHATSAPP,
            store_name=settings.STORE_NAME,
            currency=settings.STORE_CURRENCY,
            pickup_address=settings.STORE_PICKUP_ADDRESS,
            pickup_coordinates=settings.STORE_PICKUP_COORDINATES,
            pickup_map_link=settings.STORE_PICKUP_MAP_LINK,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("seeded store config row id=%s", row.id)
    return row

def get_store_config(db: Session = Depends(get_db)) -> StoreSettings:
    return StoreSettings.model_validate(load_store_config(db))
