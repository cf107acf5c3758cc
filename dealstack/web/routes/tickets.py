"""Support ticket routes.

Routes:
- GET    /tickets                - List tickets (search, status, priority) with stats
- POST   /tickets                - Open a ticket
- GET    /tickets/{id}           - Ticket detail with its conversation
- PUT    /tickets/{id}           - Replace a ticket
- PATCH  /tickets/{id}/status    - Change ticket status
- POST   /tickets/{id}/messages  - Append a message to the conversation
- POST   /tickets/{id}/rating    - Record customer satisfaction (resolved/closed only)
- DELETE /tickets/{id}           - Delete a ticket
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select

from dealstack.core.activity import record_activity
from dealstack.db.connection import get_session
from dealstack.db.models import CustomerModel, SupportTicketModel
from dealstack.db.queries import next_number
from dealstack.models import (
    RATEABLE_TICKET_STATUSES,
    Priority,
    TicketMessage,
    TicketStatus,
)
from dealstack.query.filters import FilterSpec, ListFilter, apply_list_filter
from dealstack.reporting.collection_stats import ticket_stats
from dealstack.web.dependencies import (
    CurrentUser,
    get_current_user,
    get_or_404,
    resolve_assignee,
    resolve_customer,
)
from dealstack.web.models import (
    TicketMessageCreate,
    TicketPayload,
    TicketRatingUpdate,
    TicketStatusUpdate,
)
from dealstack.web.serializers import serialize_ticket

router = APIRouter(tags=["tickets"])

TICKET_FILTERS = FilterSpec(
    search_columns=(
        SupportTicketModel.ticket_number,
        SupportTicketModel.subject,
        CustomerModel.name,
    ),
    status_column=SupportTicketModel.status,
    discriminators={"priority": SupportTicketModel.priority},
)


def set_ticket_status(ticket: SupportTicketModel, status: str) -> None:
    """Move a ticket to ``status``; leaving resolved/closed drops its rating."""
    ticket.status = status
    if status not in {s.value for s in RATEABLE_TICKET_STATUSES}:
        ticket.rating = None


@router.get("/tickets")
async def list_tickets(
    search: str | None = Query(default=None),
    status: TicketStatus | None = Query(default=None),
    priority: Priority | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    list_filter = ListFilter(search=search, status=status, priority=priority)

    async with get_session() as session:
        stmt = (
            select(SupportTicketModel)
            .outerjoin(CustomerModel, SupportTicketModel.customer_id == CustomerModel.id)
            .where(SupportTicketModel.org_id == user.org_id)
        )
        stmt = apply_list_filter(stmt, TICKET_FILTERS, list_filter)
        result = await session.execute(stmt.order_by(SupportTicketModel.created_at.desc()))
        tickets = result.scalars().all()

    return {
        "data": [serialize_ticket(t) for t in tickets],
        "stats": ticket_stats(tickets),
    }


@router.post("/tickets", status_code=201)
async def create_ticket(
    payload: TicketPayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        customer = await resolve_customer(session, user.org_id, payload.customer_id)
        ticket = SupportTicketModel(
            org_id=user.org_id,
            ticket_number=await next_number(
                session,
                SupportTicketModel.ticket_number,
                SupportTicketModel.org_id,
                user.org_id,
                "TKT",
            ),
            customer=customer,
            subject=payload.subject,
            description=payload.description,
            assignee=await resolve_assignee(session, user.org_id, payload.assigned_to),
            priority=payload.priority.value,
            status=payload.status.value,
            messages=[],
        )
        session.add(ticket)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "ticket",
            "created",
            f"Ticket {ticket.ticket_number} opened: {ticket.subject}",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"data": serialize_ticket(ticket)}


@router.get("/tickets/{ticket_id}")
async def get_ticket(ticket_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
    return {"data": serialize_ticket(ticket)}


@router.put("/tickets/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    payload: TicketPayload,
    user: CurrentUser = Depends(get_current_user),
):
    """Full replace of the editable fields. Messages are kept; the rating only while resolved or closed."""
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
        ticket.customer = await resolve_customer(session, user.org_id, payload.customer_id)
        ticket.assignee = await resolve_assignee(session, user.org_id, payload.assigned_to)
        ticket.subject = payload.subject
        ticket.description = payload.description
        ticket.priority = payload.priority.value
        set_ticket_status(ticket, payload.status.value)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "ticket",
            "updated",
            f"Ticket {ticket.ticket_number} updated",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"data": serialize_ticket(ticket)}


@router.patch("/tickets/{ticket_id}/status")
async def update_ticket_status(
    ticket_id: str,
    payload: TicketStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
        set_ticket_status(ticket, payload.status.value)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "ticket",
            "status",
            f"Ticket {ticket.ticket_number} is now {ticket.status}",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"data": serialize_ticket(ticket)}


@router.post("/tickets/{ticket_id}/messages", status_code=201)
async def add_ticket_message(
    ticket_id: str,
    payload: TicketMessageCreate,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
        message = TicketMessage(author=user.username, body=payload.body)
        # JSON column: assign a new list so the change is detected
        ticket.messages = [*(ticket.messages or []), message.to_json()]
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "ticket",
            "message",
            f"New reply on ticket {ticket.ticket_number}",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"data": serialize_ticket(ticket)}


@router.post("/tickets/{ticket_id}/rating")
async def rate_ticket(
    ticket_id: str,
    payload: TicketRatingUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
        if ticket.status not in {s.value for s in RATEABLE_TICKET_STATUSES}:
            raise HTTPException(
                status_code=400,
                detail="Only resolved or closed tickets can be rated",
            )
        ticket.rating = payload.rating
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "ticket",
            "rated",
            f"Ticket {ticket.ticket_number} rated {ticket.rating}/5",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"data": serialize_ticket(ticket)}


@router.delete("/tickets/{ticket_id}")
async def delete_ticket(ticket_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        ticket = await get_or_404(session, SupportTicketModel, user.org_id, ticket_id, "ticket")
        await session.delete(ticket)
        record_activity(
            session,
            user.org_id,
            "ticket",
            "deleted",
            f"Ticket {ticket.ticket_number} deleted",
            entity_id=ticket.id,
            username=user.username,
        )

    return {"success": True}
