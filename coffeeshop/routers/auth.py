import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from coffeeshop.config import settings
from coffeeshop.db import get_db
from coffeeshop.deps import require_admin
from coffeeshop.models.core import AdminUser
from coffeeshop.schemas.common import LoginIn, PasswordChangeIn
from coffeeshop.util.security import create_session_token, hash_pw, verify_pw

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["auth"])

@router.post("/init")
def init_admin(db: Session = Depends(get_db)):
    if db.query(AdminUser).first():
        raise HTTPException(400, detail="Admin user already exists")
    u = AdminUser(email=settings.INIT_ADMIN_EMAIL, password_hash=hash_pw(settings.INIT_ADMIN_PASSWORD))
    db.add(u); db.commit(); db.refresh(u)
    logger.info("created initial admin %s", u.email)
    return {
        "message": "Admin user created successfully",
        "credentials": {"email": settings.INIT_ADMIN_EMAIL, "password": settings.INIT_ADMIN_PASSWORD},
    }

@router.post("/login")
def login(body: LoginIn, response: Response, db: Session = Depends(get_db)):
    if not body.email or not body.password:
        raise HTTPException(400, detail="Email and password are required")
    u = db.query(AdminUser).filter(AdminUser.email == body.email).first()
    if not u or not verify_pw(u.password_hash, body.password):
        logger.warning("failed admin login for %s", body.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    response.set_cookie(
        settings.SESSION_COOKIE,
        create_session_token(u.id),
        max_age=settings.SESSION_TTL_MIN * 60,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV == "prod",
    )
    return {"success": True, "user": {"id": u.id, "email": u.email}}

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE)
    return {"success": True}

@router.get("/profile")
def get_profile(db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    u = db.get(AdminUser, admin_id)
    return {
        "id": u.id,
        "email": u.email,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }

@router.put("/profile")
def change_password(body: PasswordChangeIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if not body.current_password or not body.new_password:
        raise HTTPException(400, detail="Current password and new password are required")
    if len(body.new_password) < 6:
        raise HTTPException(400, detail="New password must be at least 6 characters long")
    u = db.get(AdminUser, admin_id)
    if not verify_pw(u.password_hash, body.current_password):
        raise HTTPException(400, detail="Current password is incorrect")
    u.password_hash = hash_pw(body.new_password)
    db.commit()
    logger.info("admin %s changed password", admin_id)
    return {"message": "Password updated successfully"}
