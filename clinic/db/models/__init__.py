"""clinic models."""

import pkgutil
from pathlib import Path

from clinic.db.models.appointments import Appointment
from clinic.db.models.doctors import Doctor
from clinic.db.models.users import User

__all__ = ["Appointment", "Doctor", "User", "load_all_models"]


def load_all_models() -> None:
    """Load all models from this folder."""
    package_dir = Path(__file__).resolve().parent
    modules = pkgutil.walk_packages(
        path=[str(package_dir)],
        prefix="clinic.db.models.",
    )
    for module in modules:
        __import__(module.name)
