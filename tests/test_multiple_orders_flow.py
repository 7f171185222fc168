"""
Tests for the multiple-orders flow and the shared bulk loop.
"""
import pytest

from printy_admin.flows.orders import MultipleOrdersFlow


def texts(response):
    return [m.text for m in response.messages]


@pytest.fixture
def start(make_context):
    def _start(*order_ids):
        flow = MultipleOrdersFlow()
        messages = flow.initial(make_context(order_ids=list(order_ids)))
        return flow, [m.text for m in messages]

    return _start


class TestMultiStart:
    def test_selection_summary(self, start):
        flow, messages = start("ORD-1", "ORD-2")
        assert messages == [
            "Multiple orders assistant ready (2 selected).",
            "You selected:",
            "You selected 2 order(s):",
            "ORD-1 • Ana Reyes • Processing",
            "ORD-2 • Ben Cruz • Awaiting Payment",
            "What do you want to do with these orders?",
        ]
        assert flow.quick_replies() == ["Change Status", "Create Quote", "End Chat"]

    def test_duplicate_ids_collapse(self, start):
        flow, _ = start("ORD-1", "ord-1", "ORD-2")
        assert flow.state.selected_ids == ("ORD-1", "ORD-2")

    def test_single_selection_starts_at_action(self, start):
        flow, messages = start("ORD-1")
        assert flow.current_node_id == "action"
        assert messages == ["You selected 1 orders. What do you want to do with these orders?"]


class TestStatusLoop:
    def test_two_orders_one_pick_then_straight_to_last(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-2")
        response = flow.respond(flow.context, "Change Status")
        assert texts(response) == ["Which order ID would you like to change?"]
        assert flow.quick_replies() == ["ORD-1", "ORD-2", "Change to All in One instead", "End Chat"]

        flow.respond(flow.context, "ORD-1")
        response = flow.respond(flow.context, "Completed")
        assert texts(response) == [
            "✅ ORD-1: Processing → Completed",
            "What status would you like to set for ORD-2?",
        ]
        assert flow.current_node_id == "choose_status"
        assert flow.state.current_target_id == "ORD-2"

        response = flow.respond(flow.context, "Cancelled")
        assert texts(response) == [
            "✅ ORD-2: Awaiting Payment → Cancelled",
            "All selected orders have been updated. Anything else?",
        ]
        assert flow.quick_replies() == ["Change Status", "End Chat"]
        assert recorder.calls == [
            ("ORD-1", {"status": "Completed"}),
            ("ORD-2", {"status": "Cancelled"}),
        ]

    def test_picker_shown_n_minus_one_times(self, start):
        flow, _ = start("ORD-1", "ORD-2", "ORD-3")
        picker_visits = 0
        flow.respond(flow.context, "Change Status")
        while flow.current_node_id != "done":
            if flow.current_node_id == "choose_id":
                picker_visits += 1
                flow.respond(flow.context, flow.quick_replies()[0])
            else:
                flow.respond(flow.context, "Processing")
        assert picker_visits == 2
        assert flow.state.changed_ids == frozenset({"ORD-1", "ORD-2", "ORD-3"})

    def test_processed_id_is_rejected(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-2", "ORD-3")
        flow.respond(flow.context, "Change Status")
        flow.respond(flow.context, "ORD-1")
        flow.respond(flow.context, "Pending")
        assert flow.current_node_id == "choose_id"

        response = flow.respond(flow.context, "ORD-1")
        assert texts(response) == ["Please pick one of the selected order IDs."]
        assert flow.current_node_id == "choose_id"
        assert flow.quick_replies()[:2] == ["ORD-2", "ORD-3"]
        assert len(recorder.calls) == 1

    def test_unselected_id_is_rejected(self, start):
        flow, _ = start("ORD-1", "ORD-2")
        flow.respond(flow.context, "Change Status")
        response = flow.respond(flow.context, "ORD-5")
        assert texts(response) == ["Please pick one of the selected order IDs."]

    def test_change_status_again_restarts_the_loop(self, start):
        flow, _ = start("ORD-1", "ORD-2")
        flow.respond(flow.context, "Change Status")
        flow.respond(flow.context, "ORD-1")
        flow.respond(flow.context, "Completed")
        flow.respond(flow.context, "Completed")
        assert flow.current_node_id == "done"

        flow.respond(flow.context, "Change Status")
        assert flow.current_node_id == "choose_id"
        assert flow.state.changed_ids == frozenset()


class TestBulkStatus:
    def test_all_in_one(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-2")
        flow.respond(flow.context, "Change Status")
        response = flow.respond(flow.context, "Change to All in One instead")
        assert texts(response) == ["Okay, apply one status to all selected. What status?"]

        response = flow.respond(flow.context, "cancel")
        assert texts(response) == [
            "✅ Applying Cancelled to 2 order(s):",
            "ORD-1: Processing → Cancelled",
            "ORD-2: Awaiting Payment → Cancelled",
            "All selected orders have been updated. Anything else?",
        ]
        assert [c[0] for c in recorder.calls] == ["ORD-1", "ORD-2"]

    def test_invalid_bulk_status(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-2")
        flow.respond(flow.context, "Change Status")
        flow.respond(flow.context, "Change to All in One instead")
        response = flow.respond(flow.context, "whatever")
        assert texts(response) == ["Please choose a valid status."]
        assert recorder.calls == []


class TestQuoteLoop:
    def test_quotes_each_selected_order(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-3")
        response = flow.respond(flow.context, "Create Quote")
        assert texts(response) == ["Which order ID would you like to create a quote for?"]

        flow.respond(flow.context, "ORD-3")
        response = flow.respond(flow.context, "1500")
        assert texts(response) == [
            "📋 Quote created for ORD-3. Set to Pending with total ₱1,500.",
            "Creating quote for ORD-1 (Ana Reyes).",
            "Please enter the quote amount (e.g., 3800, 3,800, or ₱3,800).",
        ]

        flow.respond(flow.context, "₱2,000")
        assert flow.current_node_id == "done"
        assert recorder.calls == [
            ("ORD-3", {"status": "Pending", "total": "₱1,500"}),
            ("ORD-1", {"status": "Pending", "total": "₱2,000"}),
        ]


class TestVerifyLoop:
    def test_only_verifying_orders_are_offered(self, start, recorder):
        flow, _ = start("ORD-1", "ORD-4", "ORD-5")
        assert "Verify Payment" in flow.quick_replies()

        flow.respond(flow.context, "Verify Payment")
        assert flow.current_node_id == "verify_payment_pick"
        assert flow.quick_replies() == ["ORD-4", "ORD-5", "End Chat"]

        flow.respond(flow.context, "ORD-4")
        response = flow.respond(flow.context, "Confirm Payment")
        assert texts(response)[0] == "✅ ORD-4: Verifying Payment → For Delivery/Pick-up"
        assert flow.current_node_id == "verify_payment_proof"
        assert flow.state.current_target_id == "ORD-5"

        flow.respond(flow.context, "Deny Payment")
        assert flow.current_node_id == "done"
        assert recorder.calls == [
            ("ORD-4", {"status": "For Delivery/Pick-up"}),
            ("ORD-5", {"status": "Awaiting Payment"}),
        ]

    def test_single_verifying_order_skips_the_picker(self, start):
        flow, _ = start("ORD-1", "ORD-4")
        flow.respond(flow.context, "Verify Payment")
        assert flow.current_node_id == "verify_payment_proof"
        assert flow.state.current_target_id == "ORD-4"

    def test_no_verifying_orders(self, start):
        flow, _ = start("ORD-1", "ORD-2")
        response = flow.respond(flow.context, "Verify Payment")
        assert texts(response) == ["None of the selected orders are in Verifying Payment."]
        assert flow.current_node_id == "multi_start"
