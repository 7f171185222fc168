"""
Topic and text-probe routing onto the flow registry.

resolve_flow() maps an explicit topic to a flow. dispatch_command() guesses the
flow from a free-text command: the domain comes from a keyword (or a domain
ID), and two or more IDs in the text pick the bulk variant. The probe is a
heuristic; "update order ORD-1 and the ORD-1 one" counts two IDs.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .add_service import AddServiceFlow
from .base import FlowBase, FlowRegistry
from .info import AboutFlow, FaqFlow, IntroFlow
from .normalizers import extract_ids
from .orders import MultipleOrdersFlow, OrdersFlow
from .portfolio import MultiplePortfolioFlow, PortfolioFlow
from .state import BotMessage, FlowContext
from .tickets import MultipleTicketsFlow, TicketsFlow

logger = logging.getLogger(__name__)

registry = FlowRegistry()
for _flow_class in (
    IntroFlow,
    AboutFlow,
    FaqFlow,
    OrdersFlow,
    MultipleOrdersFlow,
    TicketsFlow,
    MultipleTicketsFlow,
    PortfolioFlow,
    MultiplePortfolioFlow,
    AddServiceFlow,
):
    registry.register(_flow_class)

# Checked top to bottom; specific topics come before the generic ones they contain.
TOPIC_RULES: list[tuple[tuple[str, ...], str]] = [
    (("about",), AboutFlow.flow_id),
    (("faq",), FaqFlow.flow_id),
    (("add-service", "add service"), AddServiceFlow.flow_id),
    (("multiple-portfolio", "multi-portfolio"), MultiplePortfolioFlow.flow_id),
    (("multiple-tickets", "multi-tickets"), MultipleTicketsFlow.flow_id),
    (("multiple-orders", "multi", "bulk"), MultipleOrdersFlow.flow_id),
    (("ticket",), TicketsFlow.flow_id),
    (("portfolio", "service"), PortfolioFlow.flow_id),
    (("order",), OrdersFlow.flow_id),
]

# domain -> (keyword, singular flow, bulk flow, context id field, context ids field)
DOMAINS = {
    "order": ("order", OrdersFlow.flow_id, MultipleOrdersFlow.flow_id, "order_id", "order_ids"),
    "ticket": ("ticket", TicketsFlow.flow_id, MultipleTicketsFlow.flow_id, "ticket_id", "ticket_ids"),
    "service": (
        "service",
        PortfolioFlow.flow_id,
        MultiplePortfolioFlow.flow_id,
        "service_id",
        "service_ids",
    ),
}


def resolve_flow_id(topic: Optional[str]) -> str:
    normalized = (topic or "").strip().lower()
    for needles, flow_id in TOPIC_RULES:
        if any(needle in normalized for needle in needles):
            return flow_id
    return IntroFlow.flow_id


def resolve_flow(topic: Optional[str]) -> FlowBase:
    """Fresh flow instance for a topic; unknown topics open the admin intro."""
    flow_id = resolve_flow_id(topic)
    logger.debug("Topic %r resolved to %s", topic, flow_id)
    return registry.create(flow_id)


class DispatchResult(BaseModel):
    """A flow opened from a free-text command, with its first turn already rendered."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    flow: FlowBase
    context: FlowContext
    messages: list[BotMessage]
    quick_replies: list[str]


def detect_domain(text: str) -> Optional[str]:
    lower = text.lower()
    for domain, (keyword, *_rest) in DOMAINS.items():
        if keyword in lower:
            return domain
    for domain in DOMAINS:
        if extract_ids(domain, text):
            return domain
    return None


def dispatch_command(text: str, context: Optional[FlowContext] = None) -> DispatchResult:
    """
    Open the flow a free-text command points at.

    Extracted IDs are merged into the context: all of them (deduplicated) for
    a bulk flow, the first one for a singular flow. Without a recognizable
    domain the intro flow opens and answers the text directly.
    """
    context = context or FlowContext()
    domain = detect_domain(text)

    if domain is None:
        flow = registry.create(IntroFlow.flow_id)
        opening = flow.initial(context)
        response = flow.respond(context, text)
        return DispatchResult(
            flow=flow,
            context=context,
            messages=[*opening, *response.messages],
            quick_replies=response.quick_replies or flow.quick_replies(),
        )

    _keyword, single_flow_id, bulk_flow_id, id_field, ids_field = DOMAINS[domain]
    ids = extract_ids(domain, text)
    if len(ids) >= 2:
        flow_id = bulk_flow_id
        context = context.model_copy(update={ids_field: list(dict.fromkeys(ids))})
    else:
        flow_id = single_flow_id
        if ids:
            context = context.model_copy(update={id_field: ids[0]})

    logger.info("Command routed to %s (%d id(s))", flow_id, len(ids))
    flow = registry.create(flow_id)
    messages = flow.initial(context)
    return DispatchResult(
        flow=flow, context=context, messages=messages, quick_replies=flow.quick_replies()
    )
