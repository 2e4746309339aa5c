from datetime import datetime, timedelta

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base


class OTP(Base):
    __tablename__ = "otps"
    __table_args__ = (UniqueConstraint("user_id", "purpose", name="uq_otps_user_purpose"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    purpose: Mapped[str] = mapped_column(String(30))  # verify_email, reset_password
    code: Mapped[str] = mapped_column(String(6))
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime)
    last_sent_at: Mapped[datetime] = mapped_column(DateTime)
    send_count: Mapped[int] = mapped_column(Integer, default=1)

    user = relationship("User")

    @staticmethod
    def expiry(ttl_seconds: int) -> datetime:
        return datetime.utcnow() + timedelta(seconds=ttl_seconds)
