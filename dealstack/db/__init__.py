"""Database layer for DealStack with async SQLAlchemy."""

from dealstack.db.connection import get_session, init_db
from dealstack.db.models import (
    ActivityModel,
    Base,
    CustomerModel,
    InvoiceModel,
    OrderModel,
    SupportTicketModel,
    UserModel,
    WorksheetModel,
)

__all__ = [
    "Base",
    "ActivityModel",
    "CustomerModel",
    "InvoiceModel",
    "OrderModel",
    "SupportTicketModel",
    "UserModel",
    "WorksheetModel",
    "get_session",
    "init_db",
]
