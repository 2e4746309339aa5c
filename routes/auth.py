import logging

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Optional

from core.db import get_db
from core.errors import AuthenticationError, ConflictError, ForbiddenError, NotFoundError, RateLimitError, ValidationError
from models.user import User
from schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResendCodeRequest,
    ResetPasswordRequest,
    TokenPair,
    VerifyEmailRequest,
)
from schemas.users import UserOut
from security.password import hash_password, verify_password, needs_rehash
from security import jwt as jwt_utils
from services import otp as otp_service
from services.email import send_templated_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_current_user(
    db: Session = Depends(get_db), authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = jwt_utils.decode_access(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise AuthenticationError("Invalid token") from e
    user = db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


def _issue_tokens(user: User) -> TokenPair:
    access = jwt_utils.create_access_token(str(user.id), role=user.role)
    refresh = jwt_utils.create_refresh_token(str(user.id))
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post("/register", response_model=UserOut, status_code=201)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    existing = db.query(User).filter(User.email == data.email.lower()).one_or_none()
    if existing:
        raise ConflictError("Email already registered")
    user = User(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        phone=data.phone,
        address=data.address,
        role="user",
        is_verified=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    send_templated_email(user.email, "Welcome", "emails/welcome.txt", {"first_name": user.first_name})
    otp_service.send_code(db, user, otp_service.VERIFY_EMAIL)
    return user


@router.post("/login", response_model=TokenPair)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).one_or_none()
    if not user or not verify_password(data.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(data.password)
        db.commit()
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenPair)
def refresh(data: RefreshTokenRequest, db: Session = Depends(get_db)):
    payload = jwt_utils.decode_refresh(data.refresh_token)
    user = db.get(User, int(payload["sub"]))
    if not user:
        raise AuthenticationError("User not found")
    return _issue_tokens(user)


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


def _find_user(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).one_or_none()


@router.post("/verify-email")
def verify_email(data: VerifyEmailRequest, db: Session = Depends(get_db)):
    user = _find_user(db, data.email)
    if not user or not otp_service.verify_code(db, user, otp_service.VERIFY_EMAIL, data.code):
        raise ValidationError("Invalid or expired code")
    user.is_verified = True
    db.commit()
    logger.info("User %s verified their email", user.id)
    send_templated_email(user.email, "Email verified", "emails/verification_success.txt", {"first_name": user.first_name})
    return {"detail": "Verified"}


@router.post("/resend-verification")
def resend_verification(data: ResendCodeRequest, db: Session = Depends(get_db)):
    user = _find_user(db, data.email)
    if not user:
        raise NotFoundError("User not found")
    if user.is_verified:
        raise ConflictError("Email already verified")
    otp_service.send_code(db, user, otp_service.VERIFY_EMAIL)
    return {"detail": "Code sent"}


@router.post("/change-password")
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(data.old_password, current_user.password_hash):
        raise ValidationError("Old password is incorrect")
    current_user.password_hash = hash_password(data.new_password)
    db.commit()
    return {"detail": "Password changed"}


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    user = _find_user(db, data.email)
    if user:
        try:
            otp_service.send_code(db, user, otp_service.RESET_PASSWORD)
        except RateLimitError as e:
            # response matches the unknown-email case
            logger.info("Password reset for user %s throttled: %s", user.id, e.message)
    return {"detail": "If the email exists, a code has been sent"}


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = _find_user(db, data.email)
    if not user or not otp_service.verify_code(db, user, otp_service.RESET_PASSWORD, data.code):
        raise ValidationError("Invalid or expired code")
    user.password_hash = hash_password(data.new_password)
    # reset codes also confirm the address
    user.is_verified = True
    db.commit()
    logger.info("User %s reset their password", user.id)
    send_templated_email(
        user.email,
        "Password reset successful",
        "emails/password_reset_success.txt",
        {"first_name": user.first_name},
    )
    return {"detail": "Password reset"}
