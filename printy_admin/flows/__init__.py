"""
Rule-based admin conversation flows.

Each flow is a graph of named nodes over a typed state model, driven by the
engine in base.py. Flows read records from a host-supplied FlowContext and
persist changes only through its mutator callbacks.

Usage:
------
    from printy_admin.flows import FlowContext, resolve_flow

    flow = resolve_flow("multiple-orders")
    messages = flow.initial(FlowContext(order_ids=["ORD-1", "ORD-2"], orders=orders))
    response = flow.respond(flow.context, "Change Status")
"""

from .add_service import AddServiceFlow
from .base import FlowBase, FlowRegistry, NodeHandler
from .info import AboutFlow, FaqFlow, IntroFlow
from .orders import MultipleOrdersFlow, OrdersFlow
from .portfolio import MultiplePortfolioFlow, PortfolioFlow
from .router import DispatchResult, dispatch_command, registry, resolve_flow, resolve_flow_id
from .state import (
    BotMessage,
    FlowContext,
    FlowResponse,
    FlowState,
    NodeResult,
    Order,
    Service,
    Ticket,
)
from .tickets import MultipleTicketsFlow, TicketsFlow

__all__ = [
    "AboutFlow",
    "AddServiceFlow",
    "BotMessage",
    "DispatchResult",
    "FaqFlow",
    "FlowBase",
    "FlowContext",
    "FlowRegistry",
    "FlowResponse",
    "FlowState",
    "IntroFlow",
    "MultipleOrdersFlow",
    "MultiplePortfolioFlow",
    "MultipleTicketsFlow",
    "NodeHandler",
    "NodeResult",
    "Order",
    "OrdersFlow",
    "PortfolioFlow",
    "Service",
    "Ticket",
    "TicketsFlow",
    "dispatch_command",
    "registry",
    "resolve_flow",
    "resolve_flow_id",
]
