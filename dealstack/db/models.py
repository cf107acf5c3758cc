"""SQLAlchemy async database models for DealStack.

Every business table is scoped by ``org_id``; routes never read or write a
row without filtering on the caller's organisation. Line items and ticket
messages are owned by their parent row and stored inline as JSON.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from dealstack.models import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class UserModel(Base):
    """Staff user. Referenced (never owned) by worksheets, orders and tickets."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="agent")
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'manager', 'agent', 'viewer')", name="check_user_role"
        ),
    )


class CustomerModel(Base):
    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    company: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    # Derived from the customer's orders, see db.queries.refresh_customer_totals
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="check_customer_status"),
        CheckConstraint("total_spent >= 0", name="check_customer_total_spent"),
        Index("idx_customers_org_created", "org_id", "created_at"),
    )


class WorksheetModel(Base):
    __tablename__ = "worksheets"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    assigned_to_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    due_date: Mapped[date | None] = mapped_column(Date)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    assignee: Mapped[UserModel | None] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in-progress', 'completed')",
            name="check_worksheet_status",
        ),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high')", name="check_worksheet_priority"
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name="check_worksheet_progress"),
        Index("idx_worksheets_org_created", "org_id", "created_at"),
    )


class InvoiceModel(Base):
    __tablename__ = "invoices"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )

    # Ordered [{description, quantity, unitPrice}] with unitPrice as a string
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    customer: Mapped[CustomerModel] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("org_id", "invoice_number", name="uq_invoice_number"),
        CheckConstraint("status IN ('paid', 'pending', 'overdue')", name="check_invoice_status"),
        CheckConstraint("tax >= 0 AND discount >= 0", name="check_invoice_adjustments"),
        Index("idx_invoices_org_created", "org_id", "created_at"),
    )


class OrderModel(Base):
    __tablename__ = "orders"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(Text, nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="product")

    # Ordered [{name, quantity, unitPrice}]; no tax/discount on orders
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    assigned_to_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date | None] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    customer: Mapped[CustomerModel] = relationship(lazy="selectin")
    assignee: Mapped[UserModel | None] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("org_id", "order_number", name="uq_order_number"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'completed', 'cancelled')",
            name="check_order_status",
        ),
        CheckConstraint("type IN ('product', 'service')", name="check_order_type"),
        Index("idx_orders_org_created", "org_id", "created_at"),
    )


class SupportTicketModel(Base):
    __tablename__ = "support_tickets"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    ticket_number: Mapped[str] = mapped_column(Text, nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    assigned_to_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")

    # Ordered [{author, body, createdAt}]
    messages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    customer: Mapped[CustomerModel] = relationship(lazy="selectin")
    assignee: Mapped[UserModel | None] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("org_id", "ticket_number", name="uq_ticket_number"),
        CheckConstraint(
            "status IN ('open', 'in-progress', 'resolved', 'closed')",
            name="check_ticket_status",
        ),
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="check_ticket_priority"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="check_ticket_rating"
        ),
        Index("idx_tickets_org_created", "org_id", "created_at"),
    )


class ActivityModel(Base):
    """Activity feed entry written on every create/update/delete."""

    __tablename__ = "activity_log"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(Text)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (Index("idx_activity_org_created", "org_id", "created_at"),)
