"""SQLAlchemy ORM models for stored reference rates."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RateRecordRow(Base):
    """One published day of reference rates; the date is the key."""

    __tablename__ = "rate_records"

    rate_date: Mapped[date] = mapped_column(Date, primary_key=True)
    base: Mapped[str] = mapped_column(String(12), nullable=False)
    rates: Mapped[dict[str, float]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<RateRecordRow {self.rate_date.isoformat()} base={self.base} currencies={len(self.rates)}>"
