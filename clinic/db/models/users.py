from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base import Base
from clinic.db.types import created_at_an, updated_at_an, user_id_an

if TYPE_CHECKING:
    from clinic.db.models.appointments import Appointment


class User(Base):
    """Clinic user (patient) model."""

    __tablename__ = "users"

    id: Mapped[user_id_an] = mapped_column(primary_key=True)
    email: Mapped[str | None] = mapped_column(String(256))
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))

    created_at: Mapped[created_at_an]
    updated_at: Mapped[updated_at_an]

    appointments: Mapped[List["Appointment"]] = relationship(
        back_populates="patient",
    )

    @property
    def full_name(self) -> str:
        """First and last name joined, empty when both are missing."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)
