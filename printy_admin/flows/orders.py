"""
Order management flows.

OrdersFlow works on one order (or on the whole order list when none is
pre-selected). MultipleOrdersFlow works on a selection of orders and walks
through them with the shared bulk loop for status changes, quotes and
payment verification.
"""

import logging
from typing import Optional

from .base import FlowBase, NodeHandler
from .messages import END_CHAT, bot, bots, not_found_message
from .nodes import (
    BulkLoop,
    BulkStatusNode,
    ChooseTargetNode,
    MenuNode,
    QuotePriceNode,
    StatusChangeNode,
    VerifyPaymentNode,
    fixed_prompt,
    fixed_replies,
    goto,
    multi_action_prompt,
    multi_start_prompt,
)
from .normalizers import extract_ids
from .state import FlowContext, MultipleOrdersState, NodeResult, Order, OrdersState

logger = logging.getLogger(__name__)


STATUS_INDICATORS = {
    "Pending": "⏳ Currently pending approval",
    "Processing": "🔄 Currently being processed",
    "Awaiting Payment": "💰 Awaiting payment from customer",
    "Verifying Payment": "🔍 Proof of payment under review",
    "For Delivery/Pick-up": "🚚 Ready for delivery/pickup",
    "Completed": "✅ Order completed",
    "Cancelled": "❌ Order cancelled",
}


def status_indicator(status: str) -> str:
    return STATUS_INDICATORS.get(status, "⏳ Status unknown")


def is_quote_request(lower: str) -> bool:
    return "create quote" in lower or lower == "quote"


def is_verify_request(lower: str) -> bool:
    return "verify" in lower and "payment" in lower


# =============================================================================
# Single order
# =============================================================================

def current_order(state: OrdersState, context: FlowContext) -> Optional[Order]:
    return context.find_order(state.current_order_id)


class OrderVerbs:
    """Verb handling shared by the action, details and done nodes."""

    def action_replies(self, state: OrdersState, context: FlowContext) -> list[str]:
        order = current_order(state, context)
        replies = (
            ["View Details", "Change Status", "Create Quote"]
            if order
            else ["Change Status", "Create Quote"]
        )
        if order:
            show_verify = order.is_verifying_payment
        else:
            show_verify = any(o.is_verifying_payment for o in context.orders)
        if show_verify:
            replies.append("Verify Payment")
        replies.append(END_CHAT)
        return replies

    def handle_verb(self, text: str, state: OrdersState, context: FlowContext, replies):
        lower = text.strip().lower()
        order = current_order(state, context)

        def info(message: str) -> NodeResult:
            return NodeResult(messages=[bot(message)], quick_replies=replies)

        if lower in ("view details", "details"):
            if order is None:
                return info("Please specify an order first.")
            return NodeResult(next_node_id="details")

        if lower in ("change status", "status"):
            if order is None:
                return info("Please specify an order first.")
            return NodeResult(next_node_id="choose_status")

        if is_quote_request(lower):
            if order is not None and order.needs_quote:
                return NodeResult(next_node_id="ask_quote_price")
            if order is None:
                return info("Please specify an order first.")
            return info(f"{order.id} already has a quote ({order.total}). Status: {order.status}")

        if is_verify_request(lower):
            return self._start_verification(state, context, order, info)

        ids = extract_ids("order", text)
        if ids:
            focused = context.find_order(ids[0])
            if focused is None:
                return info(not_found_message("order").text)
            return NodeResult(next_node_id="action", state_updates={"current_order_id": focused.id})

        return None

    def _start_verification(self, state: OrdersState, context: FlowContext, order, info):
        if order is not None:
            if not order.is_verifying_payment:
                return info(
                    f"{order.id} is {order.status}. "
                    "Verify Payment is only available for Verifying Payment."
                )
            return NodeResult(next_node_id="verify_payment_proof")

        pool = state.selected_ids or tuple(o.id for o in context.orders)
        queue = []
        for order_id in pool:
            candidate = context.find_order(order_id)
            if candidate and candidate.is_verifying_payment and candidate.id not in queue:
                queue.append(candidate.id)

        if not queue:
            return info("None of the selected orders are in Verifying Payment.")
        if len(queue) == 1:
            return NodeResult(
                next_node_id="verify_payment_proof",
                state_updates={"current_order_id": queue[0], "verify_queue": ()},
            )
        return NodeResult(
            next_node_id="verify_payment_pick",
            state_updates={"current_order_id": None, "verify_queue": tuple(queue)},
        )


class OrderActionNode(OrderVerbs, NodeHandler):
    def messages(self, state, context):
        order = current_order(state, context)
        if order:
            return [
                bot(
                    f"Looking at order {order.id} for {order.customer}. "
                    f"Current status: {order.status}. What would you like to do?"
                )
            ]
        return [bot("Orders assistant ready. What would you like to do?")]

    def quick_replies(self, state, context):
        return self.action_replies(state, context)

    def handle_input(self, text, state, context):
        return self.handle_verb(text, state, context, self.action_replies(state, context))


class OrderDetailsNode(OrderVerbs, NodeHandler):
    REPLIES = ["Change Status", "Create Quote", END_CHAT]

    def messages(self, state, context):
        order = current_order(state, context)
        if order is None:
            return [not_found_message("order")]
        lines = [
            "📋 Order Details",
            f"ID: {order.id}",
            f"Customer: {order.customer}",
            f"Status: {order.status}",
        ]
        if order.priority:
            lines.append(f"Priority: {order.priority}")
        lines += [
            f"Date: {order.date}",
            f"Total: {order.total}",
        ]
        if order.proof_uploaded_at:
            lines.append(f"Proof of payment uploaded: {order.proof_uploaded_at}")
        lines.append(status_indicator(order.status))
        return bots(*lines)

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        return self.handle_verb(text, state, context, list(self.REPLIES))


class OrderDoneNode(OrderVerbs, NodeHandler):
    REPLIES = ["View Details", "Change Status", "Create Quote", END_CHAT]

    def messages(self, state, context):
        return [bot("Done. Anything else?")]

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        return self.handle_verb(text, state, context, list(self.REPLIES))


class OrdersFlow(FlowBase[OrdersState]):
    flow_id = "admin-orders"
    title = "Admin Orders"
    state_class = OrdersState

    def initialize_state(self, context: FlowContext) -> OrdersState:
        return OrdersState(
            current_node_id="action",
            current_order_id=context.order_id.upper() if context.order_id else None,
            selected_ids=tuple(i.upper() for i in context.order_ids),
        )

    def register_nodes(self) -> None:
        self.register_node("action", OrderActionNode())
        self.register_node("details", OrderDetailsNode())
        self.register_node(
            "choose_status", StatusChangeNode("order", current_order, goto("action"))
        )
        self.register_node("ask_quote_price", QuotePriceNode(current_order, goto("action")))
        self.register_node(
            "verify_payment_pick",
            ChooseTargetNode(
                "order",
                prompt=fixed_prompt("Please choose order ID you want to verify first"),
                remaining=self._verify_queue,
                next_node_id="verify_payment_proof",
                target_field="current_order_id",
            ),
        )
        self.register_node(
            "verify_payment_proof",
            VerifyPaymentNode(current_order, self._after_verification),
        )
        self.register_node("done", OrderDoneNode())

    @staticmethod
    def _verify_queue(state: OrdersState, context: FlowContext) -> list[Order]:
        pending = [context.find_order(i) for i in state.verify_queue if i not in state.verified_ids]
        return [o for o in pending if o is not None and o.is_verifying_payment]

    def _after_verification(
        self, state: OrdersState, context: FlowContext, order_id: str, messages: list
    ) -> NodeResult:
        queue = [o.id for o in self._verify_queue(state, context) if o.id != order_id]
        if len(queue) > 1:
            return NodeResult(
                next_node_id="verify_payment_pick",
                preamble=messages,
                state_updates={"current_order_id": None},
            )
        if len(queue) == 1:
            return NodeResult(
                next_node_id="verify_payment_proof",
                preamble=messages,
                state_updates={"current_order_id": queue[0]},
            )
        return NodeResult(
            next_node_id="done",
            preamble=messages,
            state_updates={"current_order_id": order_id, "verify_queue": ()},
        )


# =============================================================================
# Multiple orders
# =============================================================================

def target_order(state: MultipleOrdersState, context: FlowContext) -> Optional[Order]:
    return context.find_order(state.current_target_id)


class MultipleOrdersFlow(FlowBase[MultipleOrdersState]):
    flow_id = "admin-multiple-orders"
    title = "Admin Multiple Orders"
    state_class = MultipleOrdersState
    entry_node_id = "multi_start"

    def __init__(self):
        self.status_loop = BulkLoop("order", "changed_ids", "choose_id", "choose_status")
        self.quote_loop = BulkLoop("order", "quoted_ids", "choose_quote_target", "ask_quote_price")
        self.verify_loop = BulkLoop(
            "order",
            "verified_ids",
            "verify_payment_pick",
            "verify_payment_proof",
            eligible=lambda order: order.is_verifying_payment,
        )
        super().__init__()

    def initialize_state(self, context: FlowContext) -> MultipleOrdersState:
        selected = tuple(dict.fromkeys(i.upper() for i in context.order_ids))
        return MultipleOrdersState(
            current_node_id="multi_start" if len(selected) > 1 else "action",
            selected_ids=selected,
        )

    def register_nodes(self) -> None:
        self.register_node(
            "multi_start",
            MenuNode(multi_start_prompt("order", self.status_loop), self.menu_replies, self.handle_menu),
        )
        self.register_node(
            "action", MenuNode(multi_action_prompt("order"), self.menu_replies, self.handle_menu)
        )
        self.register_node(
            "choose_id",
            ChooseTargetNode(
                "order",
                prompt=fixed_prompt("Which order ID would you like to change?"),
                remaining=self.status_loop.remaining,
                next_node_id="choose_status",
                extra_routes={"Change to All in One instead": "choose_bulk_status"},
            ),
        )
        self.register_node(
            "choose_status",
            StatusChangeNode("order", target_order, self.status_loop.advance),
        )
        self.register_node("choose_bulk_status", BulkStatusNode(self.status_loop))
        self.register_node(
            "choose_quote_target",
            ChooseTargetNode(
                "order",
                prompt=fixed_prompt("Which order ID would you like to create a quote for?"),
                remaining=self.quote_loop.remaining,
                next_node_id="ask_quote_price",
            ),
        )
        self.register_node("ask_quote_price", QuotePriceNode(target_order, self.quote_loop.advance))
        self.register_node(
            "verify_payment_pick",
            ChooseTargetNode(
                "order",
                prompt=fixed_prompt("Please choose order ID you want to verify first"),
                remaining=self.verify_loop.remaining,
                next_node_id="verify_payment_proof",
            ),
        )
        self.register_node(
            "verify_payment_proof",
            VerifyPaymentNode(target_order, self.verify_loop.advance),
        )
        self.register_node(
            "done",
            MenuNode(
                fixed_prompt("All selected orders have been updated. Anything else?"),
                fixed_replies("Change Status", END_CHAT),
                self.handle_menu,
            ),
        )

    def menu_replies(self, state: MultipleOrdersState, context: FlowContext) -> list[str]:
        replies = ["Change Status", "Create Quote"]
        if self.verify_loop.remaining(state, context):
            replies.append("Verify Payment")
        replies.append(END_CHAT)
        return replies

    def handle_menu(
        self, text: str, state: MultipleOrdersState, context: FlowContext
    ) -> Optional[NodeResult]:
        lower = text.strip().lower()
        if lower in ("change status", "status"):
            return NodeResult(
                next_node_id="choose_id",
                state_updates={"changed_ids": frozenset(), "current_target_id": None},
            )
        if is_quote_request(lower):
            return NodeResult(
                next_node_id="choose_quote_target",
                state_updates={"quoted_ids": frozenset(), "current_target_id": None},
            )
        if is_verify_request(lower):
            verifying = self.verify_loop.remaining(state, context)
            if not verifying:
                return NodeResult(
                    messages=[bot("None of the selected orders are in Verifying Payment.")],
                    quick_replies=self.menu_replies(state, context),
                )
            if len(verifying) == 1:
                return NodeResult(
                    next_node_id="verify_payment_proof",
                    state_updates={"current_target_id": verifying[0].id},
                )
            return NodeResult(next_node_id="verify_payment_pick")
        return None
