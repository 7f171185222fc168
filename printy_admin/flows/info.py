"""
Informational flows: the admin intro, About Us and FAQs.

None of these touch records. They exist so that any topic the router does not
recognize still lands on a conversation with useful quick replies.
"""

from .base import FlowBase, NodeHandler
from .messages import END_CHAT, bot, with_end_chat
from .nodes import StaticNode
from .state import FlowContext, IntroState, NodeResult

INTRO_REPLIES = ["Manage Orders", "Manage Services", END_CHAT]


class IntroNode(NodeHandler):
    def messages(self, state, context):
        return [bot("Hello! I'm Printy, your admin assistant. What would you like to do today?")]

    def quick_replies(self, state, context):
        return list(INTRO_REPLIES)

    def handle_input(self, text, state, context):
        lower = text.lower()
        if "order" in lower:
            return NodeResult(
                messages=[bot("Opening order management… What would you like to do?")],
                quick_replies=["View Pending", "Update Status", END_CHAT],
            )
        if "service" in lower:
            return NodeResult(
                messages=[bot("Opening services… Choose an action.")],
                quick_replies=["Add Service", "Deactivate", END_CHAT],
            )
        return NodeResult(messages=[bot("Please choose an option.")], quick_replies=list(INTRO_REPLIES))


class IntroFlow(FlowBase[IntroState]):
    flow_id = "admin-intro"
    title = "Admin Intro"
    state_class = IntroState
    entry_node_id = "start"

    def initialize_state(self, context: FlowContext) -> IntroState:
        return IntroState(current_node_id="start")

    def register_nodes(self) -> None:
        self.register_node("start", IntroNode())


class AboutFlow(FlowBase[IntroState]):
    flow_id = "about"
    title = "About Us"
    state_class = IntroState
    entry_node_id = "start"

    def initialize_state(self, context: FlowContext) -> IntroState:
        return IntroState(current_node_id="start")

    def register_nodes(self) -> None:
        self.register_node(
            "start",
            StaticNode(
                [
                    "Welcome to B.J. Santiago Inc.! I'm Printy, your virtual assistant. "
                    "How can I help you today?"
                ],
                ["FAQs", END_CHAT],
                routes={"faqs": "faq", "faq": "faq"},
            ),
        )
        self.register_node("faq", FaqNode())


FAQS = {
    "What services do you offer?": (
        "We print business and BIR registered forms, commercial print jobs, "
        "packaging, digital prints and large format signage."
    ),
    "How do I get a quote?": (
        "Open the order and choose Create Quote. The customer sees the quoted "
        "total once the order is back in Pending."
    ),
    "How are payments verified?": (
        "Customers upload a proof of payment. Confirming it moves the order to "
        "For Delivery/Pick-up; denying it sends the order back to Awaiting Payment."
    ),
    "How do I add a service?": (
        "Start the Add Service assistant. It asks for the name, code, category "
        "and initial status, then asks you to confirm."
    ),
}


class FaqNode(NodeHandler):
    def messages(self, state, context):
        return [bot("Here are the most common questions. Pick one to see the answer.")]

    def quick_replies(self, state, context):
        return with_end_chat(FAQS)

    def handle_input(self, text, state, context):
        lower = text.strip().lower().rstrip("?")
        for question, answer in FAQS.items():
            if lower and lower in question.lower():
                return NodeResult(messages=[bot(answer)], quick_replies=with_end_chat(FAQS))
        return None


class FaqFlow(FlowBase[IntroState]):
    flow_id = "faqs"
    title = "FAQs"
    state_class = IntroState
    entry_node_id = "faq"

    def initialize_state(self, context: FlowContext) -> IntroState:
        return IntroState(current_node_id="faq")

    def register_nodes(self) -> None:
        self.register_node("faq", FaqNode())
