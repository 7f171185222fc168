"""
Pydantic models for the admin conversation flows.

Three groups live here:

- the turn output (BotMessage, FlowResponse) and the transition result a node
  hands back to the engine (NodeResult);
- the per-conversation state, one typed model per flow, all derived from
  FlowState;
- the host-supplied FlowContext with its entity snapshot and callbacks.
"""

import logging
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Turn output
# -----------------------------------------------------------------------------

class BotMessage(BaseModel):
    """A single utterance from the assistant."""

    model_config = ConfigDict(frozen=True)

    role: Literal["printy"] = "printy"
    text: str


class FlowResponse(BaseModel):
    """What one call to respond() returns to the UI."""

    messages: list[BotMessage] = Field(default_factory=list)
    quick_replies: Optional[list[str]] = None


class NodeResult(BaseModel):
    """
    Transition returned by a node's handle_input.

    Omitted messages/quick_replies are recomputed by the engine from the node
    that is current after the transition. preamble is shown ahead of either.
    state_updates is merged shallowly, so a changed collection must be passed
    whole.
    """

    next_node_id: Optional[str] = None
    preamble: list[BotMessage] = Field(default_factory=list)
    messages: Optional[list[BotMessage]] = None
    quick_replies: Optional[list[str]] = None
    state_updates: dict[str, Any] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Entity records (owned by the host, read by the flows)
# -----------------------------------------------------------------------------

class Order(BaseModel):
    id: str
    customer: str
    status: str
    total: str = "TBD"
    date: str = ""
    priority: Optional[str] = None
    proof_of_payment_url: Optional[str] = None
    proof_uploaded_at: Optional[str] = None

    def selection_row(self) -> tuple[str, str, str, Optional[str]]:
        return (self.id, self.customer, self.status, None)

    @property
    def is_verifying_payment(self) -> bool:
        return self.status.lower() == "verifying payment"

    @property
    def needs_quote(self) -> bool:
        return self.status == "Needs Quote" or (self.total or "").upper() == "TBD"


class Ticket(BaseModel):
    id: str
    subject: str
    status: str
    date: str = ""
    description: Optional[str] = None
    last_message: Optional[str] = None
    requester: Optional[str] = None

    def selection_row(self) -> tuple[str, str, str, Optional[str]]:
        return (self.id, self.subject, self.status, None)


class Service(BaseModel):
    id: str
    name: str
    code: str
    status: str
    category: str

    def selection_row(self) -> tuple[str, str, str, Optional[str]]:
        return (self.id, self.name, self.status, self.category)


# -----------------------------------------------------------------------------
# Flow state
# -----------------------------------------------------------------------------

class FlowState(BaseModel):
    """Base state: every flow tracks at least the active node."""

    current_node_id: str


class OrdersState(FlowState):
    current_order_id: Optional[str] = None
    selected_ids: tuple[str, ...] = ()
    verify_queue: tuple[str, ...] = ()
    verified_ids: frozenset[str] = frozenset()


class MultipleOrdersState(FlowState):
    selected_ids: tuple[str, ...] = ()
    current_target_id: Optional[str] = None
    changed_ids: frozenset[str] = frozenset()
    quoted_ids: frozenset[str] = frozenset()
    verified_ids: frozenset[str] = frozenset()


class TicketsState(FlowState):
    current_ticket_id: Optional[str] = None


class MultipleTicketsState(FlowState):
    selected_ids: tuple[str, ...] = ()
    current_target_id: Optional[str] = None
    changed_ids: frozenset[str] = frozenset()
    replied_ids: frozenset[str] = frozenset()


class PortfolioState(FlowState):
    current_service_id: Optional[str] = None


class MultiplePortfolioState(FlowState):
    selected_ids: tuple[str, ...] = ()
    current_target_id: Optional[str] = None
    processed_ids: frozenset[str] = frozenset()


class NewServiceDraft(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None


class AddServiceState(FlowState):
    new_service: NewServiceDraft = Field(default_factory=NewServiceDraft)


class IntroState(FlowState):
    pass


# -----------------------------------------------------------------------------
# Flow context
# -----------------------------------------------------------------------------

Mutator = Callable[[str, dict], None]
Refresher = Callable[[], None]

# kind -> (collection field, mutator field, refresher field)
_ENTITY_FIELDS = {
    "order": ("orders", "update_order", "refresh_orders"),
    "ticket": ("tickets", "update_ticket", "refresh_tickets"),
    "service": ("services", "update_service", "refresh_services"),
}


class FlowContext(BaseModel):
    """
    Host-supplied references handed to a flow at initial().

    The entity lists are the host's snapshot for this conversation. The
    update_* callbacks are the only way a flow persists a change; they are
    fire-and-forget and a missing one is simply skipped.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    order_id: Optional[str] = None
    order_ids: list[str] = Field(default_factory=list)
    ticket_id: Optional[str] = None
    ticket_ids: list[str] = Field(default_factory=list)
    service_id: Optional[str] = None
    service_ids: list[str] = Field(default_factory=list)

    orders: list[Order] = Field(default_factory=list)
    tickets: list[Ticket] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)

    update_order: Optional[Mutator] = None
    update_ticket: Optional[Mutator] = None
    update_service: Optional[Mutator] = None
    create_service: Optional[Callable[[Service], None]] = None

    refresh_orders: Optional[Refresher] = None
    refresh_tickets: Optional[Refresher] = None
    refresh_services: Optional[Refresher] = None

    def find(self, kind: str, entity_id: Optional[str]):
        """Case-insensitive lookup in the snapshot; services also match by code."""
        if not entity_id:
            return None
        wanted = entity_id.strip().upper()
        collection = getattr(self, _ENTITY_FIELDS[kind][0])
        found = next((e for e in collection if e.id.upper() == wanted), None)
        if found is None and kind == "service":
            found = next((s for s in collection if s.code.upper() == wanted), None)
        return found

    def find_order(self, order_id: Optional[str]) -> Optional[Order]:
        return self.find("order", order_id)

    def find_ticket(self, ticket_id: Optional[str]) -> Optional[Ticket]:
        return self.find("ticket", ticket_id)

    def find_service(self, service_id: Optional[str]) -> Optional[Service]:
        return self.find("service", service_id)

    def apply_update(self, kind: str, entity_id: str, updates: dict) -> None:
        """
        Persist a partial update through the host mutator.

        The conversation's own snapshot entry is patched so later turns of this
        conversation read the new value, then the host is asked to re-sync.
        """
        collection_name, mutator_name, refresher_name = _ENTITY_FIELDS[kind]

        mutator = getattr(self, mutator_name)
        if mutator is not None:
            mutator(entity_id, dict(updates))
        else:
            logger.debug("No %s mutator in context; %s change is local only", kind, entity_id)

        collection = getattr(self, collection_name)
        wanted = entity_id.upper()
        for index, entity in enumerate(collection):
            if entity.id.upper() == wanted:
                collection[index] = entity.model_copy(update=updates)

        refresher = getattr(self, refresher_name)
        if refresher is not None:
            refresher()

    def add_service(self, service: Service) -> None:
        """Create a service through the host, falling back to an upsert via update_service."""
        if self.create_service is not None:
            self.create_service(service)
        elif self.update_service is not None:
            self.update_service(service.id, service.model_dump())
        if self.find_service(service.id) is None:
            self.services.append(service)
        if self.refresh_services is not None:
            self.refresh_services()

    def existing_categories(self) -> list[str]:
        return sorted({s.category for s in self.services if s.category})

    def has_service_code(self, code: str) -> bool:
        wanted = code.strip().upper()
        return any(s.code.upper() == wanted or s.id.upper() == wanted for s in self.services)
