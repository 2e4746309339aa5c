import logging
import secrets
from datetime import datetime

from sqlalchemy.orm import Session

from core.config import settings
from core.errors import RateLimitError
from models.otp import OTP
from models.user import User
from services.email import send_templated_email

logger = logging.getLogger(__name__)

VERIFY_EMAIL = "verify_email"
RESET_PASSWORD = "reset_password"

_EMAILS = {
    VERIFY_EMAIL: ("Your verification code", "emails/verification_code.txt"),
    RESET_PASSWORD: ("Your password reset code", "emails/password_reset_code.txt"),
}


def _generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _get(db: Session, user: User, purpose: str) -> OTP | None:
    return db.query(OTP).filter(OTP.user_id == user.id, OTP.purpose == purpose).one_or_none()


def send_code(db: Session, user: User, purpose: str) -> str:
    """Issue a fresh code for ``purpose`` and email it, replacing any earlier one.

    Raises RateLimitError when the previous code went out less than
    OTP_RESEND_INTERVAL_SECONDS ago (0 disables the limit).
    """
    now = datetime.utcnow()
    otp = _get(db, user, purpose)
    interval = settings.OTP_RESEND_INTERVAL_SECONDS
    if otp is not None and interval > 0:
        wait = interval - int((now - otp.last_sent_at).total_seconds())
        if wait > 0:
            raise RateLimitError(f"Please wait {wait} seconds before requesting a new code")

    code = _generate_code()
    if otp is None:
        otp = OTP(user_id=user.id, purpose=purpose, send_count=0)
        db.add(otp)
    otp.code = code
    otp.attempts = 0
    otp.expires_at = OTP.expiry(settings.OTP_TTL_SECONDS)
    otp.last_sent_at = now
    otp.send_count = (otp.send_count or 0) + 1
    db.commit()

    subject, template = _EMAILS[purpose]
    send_templated_email(
        user.email,
        subject,
        template,
        {"code": code, "first_name": user.first_name, "ttl_minutes": max(settings.OTP_TTL_SECONDS // 60, 1)},
    )
    logger.info("Sent %s code to user %s", purpose, user.id)
    return code


def verify_code(db: Session, user: User, purpose: str, code: str) -> bool:
    """Check ``code``. Expired codes and codes past OTP_MAX_ATTEMPTS wrong
    guesses are discarded. A match deletes the code; the caller commits that
    together with its own change."""
    otp = _get(db, user, purpose)
    if otp is None:
        return False

    if otp.expires_at <= datetime.utcnow() or otp.attempts >= settings.OTP_MAX_ATTEMPTS:
        db.delete(otp)
        db.commit()
        return False

    if not secrets.compare_digest(otp.code, code):
        otp.attempts += 1
        db.commit()
        logger.info("Wrong %s code for user %s (%d attempts)", purpose, user.id, otp.attempts)
        return False

    db.delete(otp)
    return True
