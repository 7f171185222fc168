"""
Tests for the single-order flow: status, quotes, details and payment checks.
"""
import pytest

from printy_admin.flows.orders import OrdersFlow


def texts(response):
    return [m.text for m in response.messages]


@pytest.fixture
def start(make_context):
    def _start(**fields):
        flow = OrdersFlow()
        messages = flow.initial(make_context(**fields))
        return flow, [m.text for m in messages]

    return _start


class TestOrderAction:
    def test_focused_order_greeting(self, start):
        flow, messages = start(order_id="ord-1")
        assert messages == [
            "Looking at order ORD-1 for Ana Reyes. Current status: Processing. "
            "What would you like to do?"
        ]
        assert flow.quick_replies() == ["View Details", "Change Status", "Create Quote", "End Chat"]

    def test_without_order_offers_verify_when_any_order_is_verifying(self, start):
        flow, messages = start()
        assert messages == ["Orders assistant ready. What would you like to do?"]
        assert "Verify Payment" in flow.quick_replies()

    def test_typed_id_focuses_order(self, start):
        flow, _ = start()
        response = flow.respond(flow.context, "look at ord-2")
        assert flow.state.current_order_id == "ORD-2"
        assert texts(response)[0].startswith("Looking at order ORD-2 for Ben Cruz.")

    def test_unknown_id_is_reported(self, start):
        flow, _ = start()
        response = flow.respond(flow.context, "ORD-99")
        assert texts(response) == ["Order not found."]
        assert flow.current_node_id == "action"

    def test_change_status_needs_an_order(self, start):
        flow, _ = start()
        response = flow.respond(flow.context, "Change Status")
        assert texts(response) == ["Please specify an order first."]


class TestOrderStatus:
    def test_prefix_status_change_goes_back_to_action(self, start, recorder):
        flow, _ = start(order_id="ORD-1")
        response = flow.respond(flow.context, "Change Status")
        assert texts(response) == ["What status would you like to set for ORD-1?"]

        response = flow.respond(flow.context, "comp")
        assert texts(response)[0] == "✅ ORD-1: Processing → Completed"
        assert "Current status: Completed" in texts(response)[1]
        assert recorder.calls == [("ORD-1", {"status": "Completed"})]
        assert recorder.refreshes == 1
        assert flow.current_node_id == "action"

    def test_unrecognized_status_lists_options(self, start, recorder):
        flow, _ = start(order_id="ORD-1")
        flow.respond(flow.context, "Change Status")
        response = flow.respond(flow.context, "shipped")
        assert texts(response)[0].startswith("Valid statuses: Pending, Processing")
        assert recorder.calls == []
        assert flow.current_node_id == "choose_status"


class TestOrderQuote:
    def test_quote_sets_pending_and_formatted_total(self, start, recorder):
        flow, _ = start(order_id="ORD-3")
        response = flow.respond(flow.context, "Create Quote")
        assert texts(response) == [
            "Creating quote for ORD-3 (Cara Lim).",
            "Please enter the quote amount (e.g., 3800, 3,800, or ₱3,800).",
        ]

        response = flow.respond(flow.context, "3800")
        assert texts(response)[0] == "📋 Quote created for ORD-3. Set to Pending with total ₱3,800."
        assert recorder.calls == [("ORD-3", {"status": "Pending", "total": "₱3,800"})]
        assert flow.context.find_order("ORD-3").total == "₱3,800"

    def test_invalid_amount_is_rejected(self, start, recorder):
        flow, _ = start(order_id="ORD-3")
        flow.respond(flow.context, "Create Quote")
        response = flow.respond(flow.context, "a lot")
        assert texts(response) == ["Please enter a valid price amount (e.g., 3800, 3,800, or ₱3,800)."]
        assert recorder.calls == []

    def test_quoted_order_is_not_quoted_again(self, start):
        flow, _ = start(order_id="ORD-1")
        response = flow.respond(flow.context, "Create Quote")
        assert texts(response) == ["ORD-1 already has a quote (₱1,000). Status: Processing"]


class TestOrderDetails:
    def test_details_lines(self, start):
        flow, _ = start(order_id="ORD-4")
        response = flow.respond(flow.context, "View Details")
        lines = texts(response)
        assert lines[0] == "📋 Order Details"
        assert "ID: ORD-4" in lines
        assert "Customer: Dino Tan" in lines
        assert "Total: ₱7,400" in lines
        assert "Proof of payment uploaded: September 19, 2025 10:30 AM" in lines
        assert lines[-1] == "🔍 Proof of payment under review"
        assert flow.quick_replies() == ["Change Status", "Create Quote", "End Chat"]


class TestVerifyPayment:
    def test_confirm_moves_to_delivery(self, start, recorder):
        flow, _ = start(order_id="ORD-4")
        response = flow.respond(flow.context, "Verify Payment")
        assert texts(response)[0].startswith("Here is the proof of payment of customer Dino Tan ORD-4.")
        assert texts(response)[1] == "(/proof-4.jpg)"
        assert flow.quick_replies() == ["Confirm Payment", "Deny Payment", "End Chat"]

        response = flow.respond(flow.context, "Confirm Payment")
        assert texts(response) == ["✅ ORD-4: Verifying Payment → For Delivery/Pick-up", "Done. Anything else?"]
        assert recorder.calls == [("ORD-4", {"status": "For Delivery/Pick-up"})]
        assert "ORD-4" in flow.state.verified_ids

    def test_repeated_decision_does_not_touch_the_order(self, start, recorder):
        flow, _ = start(order_id="ORD-4")
        flow.respond(flow.context, "Verify Payment")
        flow.respond(flow.context, "Confirm Payment")

        # Replay the decision node, as a double-click would.
        flow.state = flow.state.model_copy(update={"current_node_id": "verify_payment_proof"})
        response = flow.respond(flow.context, "Deny Payment")
        assert texts(response) == ["Done. Anything else?"]
        assert recorder.calls == [("ORD-4", {"status": "For Delivery/Pick-up"})]

    def test_decision_replayed_against_stale_state_writes_once(self, start, recorder):
        """A second handler call carrying the pre-decision state is still locked out."""
        flow, _ = start(order_id="ORD-4")
        flow.respond(flow.context, "Verify Payment")
        stale = flow.state
        node = flow.nodes["verify_payment_proof"]

        node.handle_input("Confirm Payment", stale, flow.context)
        result = node.handle_input("Confirm Payment", stale, flow.context)
        assert result.next_node_id == "done"
        assert result.preamble == []
        assert recorder.calls == [("ORD-4", {"status": "For Delivery/Pick-up"})]

    def test_verify_on_other_status_is_refused(self, start):
        flow, _ = start(order_id="ORD-2")
        response = flow.respond(flow.context, "Verify Payment")
        assert texts(response) == [
            "ORD-2 is Awaiting Payment. Verify Payment is only available for Verifying Payment."
        ]

    def test_several_verifying_orders_are_walked_in_turn(self, start, recorder):
        flow, _ = start()
        response = flow.respond(flow.context, "Verify Payment")
        assert texts(response) == ["Please choose order ID you want to verify first"]
        assert flow.quick_replies() == ["ORD-4", "ORD-5", "End Chat"]

        flow.respond(flow.context, "ORD-5")
        response = flow.respond(flow.context, "Confirm Payment")
        assert texts(response)[0] == "✅ ORD-5: Verifying Payment → For Delivery/Pick-up"
        assert flow.current_node_id == "verify_payment_proof"
        assert flow.state.current_order_id == "ORD-4"

        response = flow.respond(flow.context, "Deny Payment")
        assert texts(response)[0] == (
            "⏪ ORD-4: Set back to Awaiting Payment. Customer will be asked to re-upload proof."
        )
        assert flow.current_node_id == "done"
        assert recorder.calls == [
            ("ORD-5", {"status": "For Delivery/Pick-up"}),
            ("ORD-4", {"status": "Awaiting Payment"}),
        ]
