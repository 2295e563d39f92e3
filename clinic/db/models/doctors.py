from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base import Base
from clinic.db.types import created_at_an

if TYPE_CHECKING:
    from clinic.db.models.appointments import Appointment


class Doctor(Base):
    """Doctor model."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    specialization: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[created_at_an]

    appointments: Mapped[List["Appointment"]] = relationship(back_populates="doctor")
