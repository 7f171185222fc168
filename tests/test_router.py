"""
Tests for topic routing, command dispatch and the informational flows.
"""
import pytest

from printy_admin.flows.info import FAQS
from printy_admin.flows.router import (
    detect_domain,
    dispatch_command,
    registry,
    resolve_flow,
    resolve_flow_id,
)


class TestResolveTopic:
    @pytest.mark.parametrize(
        "topic,flow_id",
        [
            ("about", "about"),
            ("faqs", "faqs"),
            ("admin-add-service", "admin-add-service"),
            ("add service", "admin-add-service"),
            ("admin-multiple-portfolio", "admin-multiple-portfolio"),
            ("admin-multiple-tickets", "admin-multiple-tickets"),
            ("admin-multiple-orders", "admin-multiple-orders"),
            ("bulk", "admin-multiple-orders"),
            ("admin-tickets", "admin-tickets"),
            ("admin-portfolio", "admin-portfolio"),
            ("services", "admin-portfolio"),
            ("admin-orders", "admin-orders"),
            ("ORDERS", "admin-orders"),
        ],
    )
    def test_topic_priority(self, topic, flow_id):
        assert resolve_flow_id(topic) == flow_id

    @pytest.mark.parametrize("topic", [None, "", "weather"])
    def test_unknown_topic_opens_intro(self, topic):
        assert resolve_flow_id(topic) == "admin-intro"

    def test_every_routed_flow_is_registered(self):
        for topic in ("about", "faq", "add service", "multi-portfolio", "multi-tickets",
                      "multi", "ticket", "service", "order", "other"):
            assert resolve_flow_id(topic) in registry

    def test_each_call_returns_a_fresh_flow(self):
        assert resolve_flow("orders") is not resolve_flow("orders")


ROUTED_TOPICS = [
    "about", "faqs", "add service", "multiple-portfolio", "multiple-tickets",
    "multiple-orders", "bulk", "tickets", "portfolio", "services", "orders", "weather",
]


class TestEndChatInEveryFlow:
    @pytest.mark.parametrize("topic", ROUTED_TOPICS)
    def test_end_ends_any_routed_flow(self, topic, make_context):
        flow = resolve_flow(topic)
        flow.initial(make_context())
        response = flow.respond(flow.context, "END")
        assert [m.text for m in response.messages] == ["Thanks! Chat ended."]
        assert response.quick_replies == ["End Chat"]
        assert flow.ended is True


class TestDispatchCommand:
    def test_two_order_ids_open_bulk_flow(self, make_context):
        result = dispatch_command("update orders ORD-1 and ORD-2", make_context())
        assert result.flow.flow_id == "admin-multiple-orders"
        assert result.context.order_ids == ["ORD-1", "ORD-2"]
        assert result.messages[0].text == "Multiple orders assistant ready (2 selected)."

    def test_repeated_id_still_counts_as_bulk(self, make_context):
        result = dispatch_command("order ORD-1 and ORD-1 again", make_context())
        assert result.flow.flow_id == "admin-multiple-orders"
        assert result.context.order_ids == ["ORD-1"]

    def test_single_order_id(self, make_context):
        result = dispatch_command("order ORD-1", make_context())
        assert result.flow.flow_id == "admin-orders"
        assert result.flow.state.current_order_id == "ORD-1"
        assert result.quick_replies[0] == "View Details"

    def test_domain_from_id_without_keyword(self, make_context):
        result = dispatch_command("TCK-3055 please", make_context())
        assert result.flow.flow_id == "admin-tickets"
        assert result.flow.current_node_id == "ticket_overview"

    def test_service_ids_open_bulk_portfolio(self, make_context):
        result = dispatch_command("edit service SRV-CP001 and SRV-CO002", make_context())
        assert result.flow.flow_id == "admin-multiple-portfolio"

    def test_no_domain_falls_back_to_intro(self):
        result = dispatch_command("hello there")
        assert result.flow.flow_id == "admin-intro"
        assert [m.text for m in result.messages] == [
            "Hello! I'm Printy, your admin assistant. What would you like to do today?",
            "Please choose an option.",
        ]

    def test_detect_domain_keyword_order(self):
        assert detect_domain("order ticket service") == "order"
        assert detect_domain("SRV-CP001") == "service"
        assert detect_domain("nothing here") is None


class TestInfoFlows:
    def test_intro_routes_keywords(self):
        flow = registry.create("admin-intro")
        flow.initial(flow.context)
        response = flow.respond(flow.context, "Manage Orders")
        assert [m.text for m in response.messages] == [
            "Opening order management… What would you like to do?"
        ]
        assert response.quick_replies == ["View Pending", "Update Status", "End Chat"]

    def test_about_leads_to_faqs(self):
        flow = registry.create("about")
        messages = flow.initial(flow.context)
        assert messages[0].text.startswith("Welcome to B.J. Santiago Inc.!")

        response = flow.respond(flow.context, "FAQs")
        assert flow.current_node_id == "faq"
        assert response.quick_replies == [*FAQS, "End Chat"]

    def test_faq_answer(self):
        flow = registry.create("faqs")
        flow.initial(flow.context)
        response = flow.respond(flow.context, "How do I get a quote?")
        assert response.messages[0].text == FAQS["How do I get a quote?"]

    def test_unknown_faq_falls_back(self):
        flow = registry.create("faqs")
        flow.initial(flow.context)
        response = flow.respond(flow.context, "Where is the moon?")
        assert response.messages[0].text == "Please use the options below."
