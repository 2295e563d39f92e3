from .appointments import AppointmentsService
from .users import UsersService

__all__ = ["AppointmentsService", "UsersService"]
