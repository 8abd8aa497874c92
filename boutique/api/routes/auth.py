from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from boutique.api.deps import get_current_user
from boutique.api.presenters import user_out
from boutique.core.security import create_access_token
from boutique.db.database import get_db
from boutique.models.user import User
from boutique.schemas.auth import (
    GenericMessageResponse,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    SignUpRequest,
    TokenResponse,
    UserOut,
)
from boutique.services import accounts

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(subject=str(user.id), role=user.role.value),
        user=user_out(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignUpRequest, db: Session = Depends(get_db)):
    user = accounts.signup(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        phone=payload.phone,
    )
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, payload.email, payload.password)
    return _token_response(user)


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = accounts.authenticate(db, form_data.username, form_data.password)
    return _token_response(user)


@router.post("/logout", response_model=GenericMessageResponse)
def logout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    accounts.logout(db, current_user)
    return GenericMessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return user_out(current_user)


@router.patch("/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = accounts.update_own_profile(
        db,
        current_user,
        full_name=payload.full_name,
        phone=payload.phone,
        pin_code=payload.pin_code,
    )
    return user_out(user)


@router.post("/password", response_model=GenericMessageResponse)
def change_password(
    payload: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    accounts.change_password(db, current_user, payload.current_password, payload.new_password)
    return GenericMessageResponse(message="Password changed successfully")
