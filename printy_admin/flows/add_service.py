"""
Guided creation of a new portfolio service.

start (name) -> enter_code -> choose_category -> choose_status -> confirm -> done

The draft lives in AddServiceState.new_service and is only written to the
host when the admin confirms it.
"""

import logging

from .base import FlowBase, NodeHandler
from .messages import END_CHAT, bot, bots, with_end_chat
from .normalizers import (
    SERVICE_STATUS_OPTIONS,
    is_valid_category,
    is_valid_service_name,
    is_valid_text_input,
    normalize_status,
)
from .state import AddServiceState, FlowContext, NewServiceDraft, NodeResult, Service

logger = logging.getLogger(__name__)


def _draft_update(state: AddServiceState, **fields) -> dict:
    return {"new_service": state.new_service.model_copy(update=fields)}


def _retry(text: str, replies=None) -> NodeResult:
    return NodeResult(messages=[bot(text)], quick_replies=replies or [END_CHAT])


def _duplicate_code(code: str) -> str:
    return f'Service code "{code}" already exists. Please choose a different code.'


class ServiceNameNode(NodeHandler):
    def __init__(self, welcome: bool):
        self.welcome = welcome

    def messages(self, state, context):
        texts = []
        if self.welcome:
            texts.append(
                "Welcome! I'll help you add a new service to the portfolio. "
                "Let's start with the service name."
            )
        texts.append("What would you like to name this service?")
        return bots(*texts)

    def quick_replies(self, state, context):
        return [END_CHAT]

    def handle_input(self, text, state, context):
        name = text.strip()
        if not is_valid_text_input(name):
            return _retry("Please provide a service name.")
        if not is_valid_service_name(name):
            return _retry("Service names are limited to 100 characters.")
        return NodeResult(next_node_id="enter_code", state_updates=_draft_update(state, name=name))


class ServiceCodeNode(NodeHandler):
    def messages(self, state, context):
        return bots(
            f'Great! Service name: "{state.new_service.name}". Now let\'s set the service code.',
            "Enter a service code (e.g., SRV-XXX):",
        )

    def quick_replies(self, state, context):
        return [END_CHAT]

    def handle_input(self, text, state, context):
        code = text.strip().upper()
        if not is_valid_text_input(code):
            return _retry("Please provide a service code.")
        if context.has_service_code(code):
            return _retry(_duplicate_code(code))
        return NodeResult(
            next_node_id="choose_category", state_updates=_draft_update(state, code=code)
        )


class ServiceCategoryNode(NodeHandler):
    """Existing categories are offered, but any new name is accepted too."""

    def messages(self, state, context):
        return bots(
            f'Perfect! Service code: "{state.new_service.code}". Now let\'s choose a category.',
            f"Available categories: {', '.join(context.existing_categories())}",
            "Which category should this service belong to? "
            "(You can also type a new category name)",
        )

    def quick_replies(self, state, context):
        return with_end_chat(context.existing_categories())

    def handle_input(self, text, state, context):
        category = text.strip()
        if not is_valid_text_input(category):
            return _retry("Please provide a category.", self.quick_replies(state, context))
        if not is_valid_category(category):
            return _retry(
                "Category names are limited to 50 characters.", self.quick_replies(state, context)
            )
        # Reuse the existing spelling when the admin types a known category.
        known = {c.lower(): c for c in context.existing_categories()}
        category = known.get(category.lower(), category)
        return NodeResult(
            next_node_id="choose_status", state_updates=_draft_update(state, category=category)
        )


class ServiceStatusNode(NodeHandler):
    def messages(self, state, context):
        return bots(
            f'Excellent! Category: "{state.new_service.category}". '
            "Now let's set the initial status.",
            "What should be the initial status of this service?",
        )

    def quick_replies(self, state, context):
        return with_end_chat(SERVICE_STATUS_OPTIONS)

    def handle_input(self, text, state, context):
        status = normalize_status("service", text)
        if status is None:
            return _retry(
                f"Please choose a valid status: {', '.join(SERVICE_STATUS_OPTIONS)}",
                self.quick_replies(state, context),
            )
        return NodeResult(next_node_id="confirm", state_updates=_draft_update(state, status=status))


class ConfirmServiceNode(NodeHandler):
    REPLIES = ["Yes, Create Service", "No, Start Over", END_CHAT]

    def messages(self, state, context):
        draft = state.new_service
        return bots(
            "Please review the new service details:",
            f"📝 Name: {draft.name}",
            f"🏷️ Code: {draft.code}",
            f"📂 Category: {draft.category}",
            f"📊 Status: {draft.status}",
            "Does this look correct?",
        )

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        lower = text.strip().lower()
        if "yes" in lower or "create" in lower:
            return self._create(state, context)
        if "no" in lower or "start over" in lower:
            return NodeResult(next_node_id="start", state_updates={"new_service": NewServiceDraft()})
        return None

    def _create(self, state: AddServiceState, context: FlowContext) -> NodeResult:
        draft = state.new_service
        # Another conversation may have taken the code since enter_code.
        if context.has_service_code(draft.code):
            return NodeResult(
                next_node_id="enter_code",
                preamble=[bot(_duplicate_code(draft.code))],
            )
        service = Service(
            id=draft.code,
            name=draft.name,
            code=draft.code,
            category=draft.category,
            status=draft.status,
        )
        context.add_service(service)
        logger.info("Service %s (%s) created in %r", service.code, service.name, service.category)
        return NodeResult(next_node_id="done")


class ServiceCreatedNode(NodeHandler):
    def messages(self, state, context):
        draft = state.new_service
        return bots(
            "✅ Service created successfully!",
            f'New service "{draft.name}" ({draft.code}) has been added to the '
            f'"{draft.category}" category with status "{draft.status}".',
            "The service is now available in your portfolio. "
            "Would you like to add another service?",
        )

    def quick_replies(self, state, context):
        return ["Add Another Service", END_CHAT]

    def handle_input(self, text, state, context):
        lower = text.strip().lower()
        if "another" in lower or "add" in lower:
            return NodeResult(
                next_node_id="enter_name", state_updates={"new_service": NewServiceDraft()}
            )
        return None


class AddServiceFlow(FlowBase[AddServiceState]):
    flow_id = "admin-add-service"
    title = "Admin Add Service"
    state_class = AddServiceState
    entry_node_id = "start"

    def initialize_state(self, context: FlowContext) -> AddServiceState:
        return AddServiceState(current_node_id="start")

    def register_nodes(self) -> None:
        self.register_node("start", ServiceNameNode(welcome=True))
        self.register_node("enter_name", ServiceNameNode(welcome=False))
        self.register_node("enter_code", ServiceCodeNode())
        self.register_node("choose_category", ServiceCategoryNode())
        self.register_node("choose_status", ServiceStatusNode())
        self.register_node("confirm", ConfirmServiceNode())
        self.register_node("done", ServiceCreatedNode())
