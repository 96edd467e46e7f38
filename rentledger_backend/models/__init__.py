from rentledger_backend.extensions import db

from .unit import Unit
from .tenancy import Tenancy
from .rent_obligation import RentObligation

__all__ = ["db", "Unit", "Tenancy", "RentObligation"]
