"""
Service portfolio flows.

PortfolioFlow edits one service (name, category, status, or a move into
another existing category) and can add a service from a one-line form.
MultiplePortfolioFlow walks a selection of services, one edit per service.
"""

import logging
import re
from typing import Optional

from .base import FlowBase, NodeHandler
from .messages import END_CHAT, bot, bots, not_found_message, service_updated_message
from .nodes import (
    BulkLoop,
    ChooseTargetNode,
    Continuation,
    MenuNode,
    MoveCategoryNode,
    StatusChangeNode,
    Target,
    TextFieldNode,
    fixed_prompt,
    fixed_replies,
    goto,
    multi_action_prompt,
    multi_start_prompt,
)
from .normalizers import extract_ids, is_valid_category, is_valid_service_name
from .state import FlowContext, MultiplePortfolioState, NodeResult, PortfolioState, Service

logger = logging.getLogger(__name__)

ADD_SERVICE_PATTERN = re.compile(r"name=(.+?);\s*code=(.+?);\s*category=(.+)$", re.IGNORECASE)
ADD_SERVICE_FORM = "Name=Service Name; Code=SRV-XXX; Category=Category Name"

# Edit verbs shared by both flows, mapped to their field nodes.
EDIT_VERBS = {
    "edit name": "edit_name",
    "name": "edit_name",
    "edit category": "edit_category",
    "category": "edit_category",
    "edit status": "edit_status",
    "status": "edit_status",
    "move category": "move_category",
    "move to another category": "move_category",
    "move": "move_category",
}


def edit_verb(text: str):
    node_id = EDIT_VERBS.get(text.strip().lower())
    return NodeResult(next_node_id=node_id) if node_id else None


def _status_prompt(service: Service) -> list:
    return [bot(f"Current status: {service.status}. What should the new status be?")]


def _status_message(service: Service, previous: str, new: str):
    return service_updated_message(service.code or service.id, "status", previous, new)


def register_field_nodes(
    flow: FlowBase, target: Target, then: Continuation, fallback_node_id: str
) -> None:
    """Register edit_name, edit_category, edit_status and move_category on a flow."""
    flow.register_node(
        "edit_name",
        TextFieldNode("name", target, then, is_valid_service_name, fallback_node_id),
    )
    flow.register_node(
        "edit_category",
        TextFieldNode("category", target, then, is_valid_category, fallback_node_id),
    )
    flow.register_node(
        "edit_status",
        StatusChangeNode(
            "service",
            target,
            then,
            fallback_node_id,
            prompt=_status_prompt,
            message=_status_message,
        ),
    )
    flow.register_node("move_category", MoveCategoryNode(target, then, fallback_node_id))


# =============================================================================
# Single service
# =============================================================================

def current_service(state: PortfolioState, context: FlowContext) -> Optional[Service]:
    return context.find_service(state.current_service_id)


class PortfolioActionNode(NodeHandler):
    def messages(self, state, context):
        service = current_service(state, context)
        if service:
            return [
                bot(
                    f"Looking at {service.name} ({service.code}). "
                    f"Current status: {service.status}. What would you like to do?"
                )
            ]
        return [bot("Portfolio assistant ready. What would you like to do?")]

    def quick_replies(self, state, context):
        if current_service(state, context):
            return ["Edit Service", "Add Service", END_CHAT]
        return ["Add Service", END_CHAT]

    def handle_input(self, text, state, context):
        lower = text.strip().lower()
        if lower in ("add service", "add"):
            return NodeResult(next_node_id="add_service")

        ids = extract_ids("service", text)
        if ids:
            service = context.find_service(ids[0])
            if service is None:
                return NodeResult(
                    messages=[not_found_message("service")],
                    quick_replies=self.quick_replies(state, context),
                )
            return NodeResult(
                next_node_id="action", state_updates={"current_service_id": service.id}
            )

        if current_service(state, context) is None:
            return None
        if lower in ("edit service", "edit"):
            return NodeResult(next_node_id="edit_service")
        return edit_verb(text)


class EditServiceNode(NodeHandler):
    REPLIES = ["Edit Name", "Edit Category", "Move to Another Category", "Edit Status", END_CHAT]

    def messages(self, state, context):
        service = current_service(state, context)
        if service is None:
            return [not_found_message("service")]
        return [bot(f"What would you like to edit for {service.name}?")]

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        return edit_verb(text)


class AddServiceFormNode(NodeHandler):
    """One-line service creation: Name=...; Code=...; Category=..."""

    def messages(self, state, context):
        return [bot(f"To add a new service, provide: {ADD_SERVICE_FORM}")]

    def quick_replies(self, state, context):
        return [END_CHAT]

    def handle_input(self, text, state, context):
        match = ADD_SERVICE_PATTERN.search(text.strip())
        if match is None:
            return NodeResult(
                messages=[bot(f"Please provide: {ADD_SERVICE_FORM}")],
                quick_replies=[END_CHAT],
            )

        name, code, category = (part.strip() for part in match.groups())
        code = code.upper()
        if not (is_valid_service_name(name) and is_valid_category(category)):
            return NodeResult(
                messages=[bot(f"Please provide: {ADD_SERVICE_FORM}")],
                quick_replies=[END_CHAT],
            )
        if context.has_service_code(code):
            return NodeResult(
                messages=[bot(f'Service code "{code}" already exists. Please choose a different code.')],
                quick_replies=[END_CHAT],
            )

        service = Service(id=code, name=name, code=code, status="Active", category=category)
        context.add_service(service)
        logger.info("Service %s created in %r", code, category)
        return NodeResult(
            next_node_id="action",
            preamble=bots(
                f'Creating service {name} ({code}) in category "{category}"…',
                "Service created (status Active by default).",
            ),
            state_updates={"current_service_id": service.id},
        )


class PortfolioFlow(FlowBase[PortfolioState]):
    flow_id = "admin-portfolio"
    title = "Admin Portfolio"
    state_class = PortfolioState

    def initialize_state(self, context: FlowContext) -> PortfolioState:
        service = context.find_service(context.service_id)
        return PortfolioState(
            current_node_id="action",
            current_service_id=service.id if service else context.service_id,
        )

    def register_nodes(self) -> None:
        self.register_node("action", PortfolioActionNode())
        self.register_node("edit_service", EditServiceNode())
        self.register_node("add_service", AddServiceFormNode())
        register_field_nodes(self, current_service, goto("action"), "action")


# =============================================================================
# Multiple services
# =============================================================================

def target_service(state: MultiplePortfolioState, context: FlowContext) -> Optional[Service]:
    return context.find_service(state.current_target_id)


class WorkOnServiceNode(NodeHandler):
    REPLIES = ["Edit Name", "Edit Category", "Edit Status", "Move Category", END_CHAT]

    def messages(self, state, context):
        service = target_service(state, context)
        if service is None:
            return [not_found_message("service")]
        return [
            bot(
                f"Working on {service.name} ({service.code}). Current status: "
                f"{service.status}, Category: {service.category}. What would you like to edit?"
            )
        ]

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        return edit_verb(text)


class MultiplePortfolioFlow(FlowBase[MultiplePortfolioState]):
    flow_id = "admin-multiple-portfolio"
    title = "Admin Multiple Portfolio"
    state_class = MultiplePortfolioState
    entry_node_id = "multi_start"

    def __init__(self):
        self.loop = BulkLoop("service", "processed_ids", "choose_service", "edit_service")
        super().__init__()

    def initialize_state(self, context: FlowContext) -> MultiplePortfolioState:
        selected = tuple(dict.fromkeys(i.upper() for i in context.service_ids))
        return MultiplePortfolioState(
            current_node_id="multi_start" if len(selected) > 1 else "action",
            selected_ids=selected,
        )

    def register_nodes(self) -> None:
        menu = fixed_replies("Edit Service", END_CHAT)
        self.register_node(
            "multi_start", MenuNode(multi_start_prompt("service", self.loop), menu, self.handle_menu)
        )
        self.register_node(
            "action", MenuNode(multi_action_prompt("service"), menu, self.handle_menu)
        )
        self.register_node(
            "choose_service",
            ChooseTargetNode(
                "service",
                prompt=self.picker_prompt,
                remaining=self.loop.remaining,
                next_node_id="edit_service",
                label=lambda service: f"{service.code} - {service.name}",
                reject_text="Please pick one of the selected services.",
            ),
        )
        self.register_node("edit_service", WorkOnServiceNode())
        register_field_nodes(self, target_service, self.loop.advance, "choose_service")
        self.register_node(
            "done",
            MenuNode(
                fixed_prompt("All selected services have been processed. Anything else?"),
                menu,
                self.handle_menu,
            ),
        )

    def picker_prompt(self, state: MultiplePortfolioState, context: FlowContext):
        remaining = len(self.loop.remaining(state, context))
        if state.processed_ids:
            return [bot(f"Next service to work on? ({remaining} remaining)")]
        return [bot(f"Which service would you like to work on first? ({remaining} remaining)")]

    def handle_menu(
        self, text: str, state: MultiplePortfolioState, context: FlowContext
    ) -> Optional[NodeResult]:
        if text.strip().lower() not in ("edit service", "edit"):
            return None
        return NodeResult(
            next_node_id="choose_service",
            state_updates={"processed_ids": frozenset(), "current_target_id": None},
        )
