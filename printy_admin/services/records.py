"""
Record Store Service
====================

This module is the host side of the admin flows: it reads orders, tickets and
services out of the database as pydantic entities and hands the flows the
callbacks they persist through.

Why a session factory?
----------------------
A conversation outlives the HTTP request that started it, so the mutators
cannot hold on to a request-scoped Session. RecordService opens a short-lived
session per read or write instead. Tests pass their own factory bound to an
in-memory database.

Write Path:
-----------
Flows never touch the database. A node calls FlowContext.apply_update(), which
calls one of the update_* mutators below (commit immediately) and then the
matching refresh_* callback, which reloads the conversation's snapshot from
the database in place.

Usage:
------
    from printy_admin.services.records import RecordService, build_context

    records = RecordService(SessionLocal)
    context = build_context(records, "admin-orders", subject_id="ORD-12349")
    flow.initial(context)
"""

import logging
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..flows.state import FlowContext, Order, Service, Ticket
from ..models import AdminOrder, AdminService, AdminTicket

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]

# kind -> (table, entity model)
_TABLES = {
    "order": (AdminOrder, Order),
    "ticket": (AdminTicket, Ticket),
    "service": (AdminService, Service),
}


def _to_entity(row, entity_class):
    return entity_class(**{name: getattr(row, name) for name in entity_class.model_fields})


class RecordService:
    """Reads and writes the admin records, one short session per call."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _list(self, kind: str) -> list:
        table, entity_class = _TABLES[kind]
        with self.session_factory() as db:
            rows = db.query(table).order_by(table.sort_order, table.id).all()
            return [_to_entity(row, entity_class) for row in rows]

    def list_orders(self) -> list[Order]:
        return self._list("order")

    def list_tickets(self) -> list[Ticket]:
        return self._list("ticket")

    def list_services(self) -> list[Service]:
        return self._list("service")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _update(self, kind: str, entity_id: str, updates: dict) -> None:
        table, entity_class = _TABLES[kind]
        fields = {k: v for k, v in updates.items() if k in entity_class.model_fields and k != "id"}
        ignored = set(updates) - set(fields) - {"id"}
        if ignored:
            logger.warning("Ignoring unknown %s fields: %s", kind, sorted(ignored))

        with self.session_factory() as db:
            row = db.get(table, entity_id)
            if row is None:
                logger.warning("Cannot update %s %s: not found", kind, entity_id)
                return
            for name, value in fields.items():
                setattr(row, name, value)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.error("Failed to update %s %s", kind, entity_id, exc_info=True)
                raise
        logger.info("Updated %s %s: %s", kind, entity_id, ", ".join(sorted(fields)))

    def update_order(self, order_id: str, updates: dict) -> None:
        self._update("order", order_id, updates)

    def update_ticket(self, ticket_id: str, updates: dict) -> None:
        self._update("ticket", ticket_id, updates)

    def update_service(self, service_id: str, updates: dict) -> None:
        self._update("service", service_id, updates)

    def create_service(self, service: Service) -> None:
        with self.session_factory() as db:
            position = db.query(AdminService).count()
            db.add(AdminService(sort_order=position, **service.model_dump()))
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.error("Failed to create service %s", service.code, exc_info=True)
                raise
        logger.info("Created service %s (%s)", service.code, service.name)


# =============================================================================
# Context Assembly
# =============================================================================

# flow id -> domain whose subject ids the flow consumes
FLOW_DOMAINS = {
    "admin-orders": "order",
    "admin-multiple-orders": "order",
    "admin-tickets": "ticket",
    "admin-multiple-tickets": "ticket",
    "admin-portfolio": "service",
    "admin-multiple-portfolio": "service",
    "admin-add-service": "service",
}


def _reload_into(target: list, load: Callable[[], list]) -> Callable[[], None]:
    def _refresh() -> None:
        target[:] = load()

    return _refresh


def build_context(
    records: RecordService,
    flow_id: str,
    subject_id: Optional[str] = None,
    subject_ids: Optional[Iterable[str]] = None,
) -> FlowContext:
    """
    Assemble the FlowContext a flow is started with.

    The subject ids are placed on the fields of the flow's domain
    (order_id/order_ids and so on). Every conversation gets its own snapshot
    lists, refreshed in place after each write.
    """
    context = FlowContext(
        orders=records.list_orders(),
        tickets=records.list_tickets(),
        services=records.list_services(),
        update_order=records.update_order,
        update_ticket=records.update_ticket,
        update_service=records.update_service,
        create_service=records.create_service,
    )
    context.refresh_orders = _reload_into(context.orders, records.list_orders)
    context.refresh_tickets = _reload_into(context.tickets, records.list_tickets)
    context.refresh_services = _reload_into(context.services, records.list_services)

    domain = FLOW_DOMAINS.get(flow_id)
    if domain is not None:
        if subject_id:
            setattr(context, f"{domain}_id", subject_id.strip().upper())
        if subject_ids:
            setattr(context, f"{domain}_ids", [i.strip().upper() for i in subject_ids if i.strip()])
    return context
