"""Common query helpers shared by the API routes.

All lookups are tenant-scoped: a record belonging to another organisation is
indistinguishable from a missing one.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from dealstack.db.models import Base, CustomerModel, OrderModel, UserModel
from dealstack.models import OrderStatus

ModelT = TypeVar("ModelT", bound=Base)

_NUMBER_SUFFIX = re.compile(r"-(\d+)$")


async def fetch_owned(
    session: AsyncSession,
    model: type[ModelT],
    org_id: str,
    record_id: UUID,
) -> ModelT | None:
    """Load one record by id within an organisation.

    Returns:
        The record, or None if it does not exist in ``org_id``
    """
    result = await session.execute(
        select(model).where(model.id == record_id, model.org_id == org_id)
    )
    return result.scalar_one_or_none()


async def fetch_user(session: AsyncSession, org_id: str, user_id: UUID) -> UserModel | None:
    """Load an active user of the organisation."""
    result = await session.execute(
        select(UserModel).where(
            UserModel.id == user_id,
            UserModel.org_id == org_id,
            UserModel.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def next_number(
    session: AsyncSession,
    column: InstrumentedAttribute,
    org_id_column: InstrumentedAttribute,
    org_id: str,
    prefix: str,
) -> str:
    """Next human-readable document number, e.g. ``INV-0007``.

    Numbers are sequential per organisation and never reuse the numeric
    suffix of an existing record.
    """
    result = await session.execute(select(column).where(org_id_column == org_id))
    highest = 0
    for value in result.scalars():
        match = _NUMBER_SUFFIX.search(value or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{highest + 1:04d}"


async def refresh_customer_totals(session: AsyncSession, customer_id: UUID) -> None:
    """Recompute a customer's order count and lifetime spend.

    Cancelled orders do not count towards either figure.
    """
    result = await session.execute(
        select(func.count(OrderModel.id), func.coalesce(func.sum(OrderModel.total), 0)).where(
            OrderModel.customer_id == customer_id,
            OrderModel.status != OrderStatus.CANCELLED.value,
        )
    )
    order_count, spent = result.one()
    await session.execute(
        update(CustomerModel)
        .where(CustomerModel.id == customer_id)
        .values(total_orders=order_count or 0, total_spent=Decimal(str(spent or 0)))
    )
