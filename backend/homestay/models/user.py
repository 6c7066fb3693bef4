"""User model: authentication, role and account state."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from homestay.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

ROLE_GUEST = "guest"
ROLE_HOST = "host"
ROLE_ADMIN = "admin"
ROLES = (ROLE_GUEST, ROLE_HOST, ROLE_ADMIN)


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A traveler, host, or administrator account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=ROLE_GUEST, nullable=False)  # guest, host, admin
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
