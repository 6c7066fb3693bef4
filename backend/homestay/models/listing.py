"""Listing model: homestays offered by hosts."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from homestay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Listing(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A property a host offers for nightly stays."""

    __tablename__ = "listings"

    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)  # active, inactive

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title!r}, host_id={self.host_id})>"
