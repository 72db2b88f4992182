"""Staff login."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sqlalchemy.orm import Session
from sqlalchemy import select

from quillpress.backend.deps import get_db
from quillpress.backend.models.staff import StaffUser
from quillpress.backend.auth import (
    get_password_hash,
    create_access_token,
    verify_password,
    get_current_staff,
)
from quillpress.backend.config import get_settings

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


def ensure_staff_user(db: Session) -> None:
    s = get_settings()
    existing = db.execute(select(StaffUser).where(StaffUser.email == s.staff_default_email)).scalar_one_or_none()
    if existing:
        return
    db.add(StaffUser(
        email=s.staff_default_email,
        password_hash=get_password_hash(s.staff_default_password),
    ))
    db.commit()


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    ensure_staff_user(db)
    user = db.execute(select(StaffUser).where(StaffUser.email == data.email)).scalar_one_or_none()
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is suspended")
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return TokenResponse(access_token=token)


@router.get("/me")
def me(payload: dict = Depends(get_current_staff)):
    return {"id": payload.get("sub"), "email": payload.get("email")}
