"""
Support ticket flows.

TicketsFlow opens on a pre-selected ticket's overview, or lets the admin pick
one from the list. MultipleTicketsFlow steps through a selection for status
changes and replies, or applies one status to all of them.
"""

import logging
from typing import Optional

from .base import FlowBase, NodeHandler
from .messages import END_CHAT, bot, bots, not_found_message, with_end_chat
from .nodes import (
    BulkLoop,
    BulkStatusNode,
    ChooseTargetNode,
    MenuNode,
    ReplyNode,
    StatusChangeNode,
    fixed_prompt,
    fixed_replies,
    goto,
    multi_action_prompt,
    multi_start_prompt,
)
from .normalizers import extract_ids
from .state import FlowContext, MultipleTicketsState, NodeResult, Ticket, TicketsState

logger = logging.getLogger(__name__)

# Tickets offered as quick replies in the picker.
PICKER_LIMIT = 5


# =============================================================================
# Single ticket
# =============================================================================

def current_ticket(state: TicketsState, context: FlowContext) -> Optional[Ticket]:
    return context.find_ticket(state.current_ticket_id)


class TicketActionNode(NodeHandler):
    def messages(self, state, context):
        ticket = current_ticket(state, context)
        if ticket:
            return [
                bot(
                    f"Looking at ticket {ticket.id} - {ticket.subject}. "
                    f"Current status: {ticket.status}. What would you like to do?"
                )
            ]
        return [bot("Tickets assistant ready. Choose a ticket to manage.")]

    def quick_replies(self, state, context):
        if current_ticket(state, context):
            return ["View Details", "Reply", "Change Status", END_CHAT]
        return ["Choose Ticket", END_CHAT]

    def handle_input(self, text, state, context):
        lower = text.strip().lower()
        if lower in ("choose ticket", "choose"):
            return NodeResult(next_node_id="choose_ticket")

        ids = extract_ids("ticket", text)
        if ids:
            ticket = context.find_ticket(ids[0])
            if ticket is None:
                return NodeResult(
                    messages=[not_found_message("ticket")],
                    quick_replies=self.quick_replies(state, context),
                )
            return NodeResult(
                next_node_id="ticket_overview", state_updates={"current_ticket_id": ticket.id}
            )

        if current_ticket(state, context) is None:
            return None
        if lower in ("view details", "details"):
            return NodeResult(next_node_id="ticket_overview")
        if lower == "reply":
            return NodeResult(next_node_id="reply")
        if lower in ("change status", "status"):
            return NodeResult(next_node_id="choose_status")
        return None


class ChooseTicketNode(NodeHandler):
    """Any ticket in the snapshot may be picked, not just the ones offered."""

    def messages(self, state, context):
        messages = [bot("Please select a ticket to view.")]
        messages += bots(
            *(f"{t.id} • {t.subject} • {t.status}" for t in context.tickets[:PICKER_LIMIT])
        )
        return messages

    def quick_replies(self, state, context):
        return with_end_chat(t.id for t in context.tickets[:PICKER_LIMIT])

    def handle_input(self, text, state, context):
        ids = extract_ids("ticket", text)
        ticket = context.find_ticket(ids[0] if ids else text.strip())
        if ticket is None:
            return NodeResult(
                messages=[
                    bot("Please choose a ticket from the list or type its ID (e.g., TCK-2981).")
                ],
                quick_replies=self.quick_replies(state, context),
            )
        return NodeResult(
            next_node_id="ticket_overview", state_updates={"current_ticket_id": ticket.id}
        )


class TicketOverviewNode(NodeHandler):
    REPLIES = ["Reply", "Change Status", "Choose Another Ticket", END_CHAT]

    def messages(self, state, context):
        ticket = current_ticket(state, context)
        if ticket is None:
            return [not_found_message("ticket")]
        lines = [f"Viewing {ticket.id}", f"Subject: {ticket.subject}"]
        if ticket.description:
            lines.append(f"Description: {ticket.description}")
        lines += [
            f"From: {ticket.requester or 'Customer'}",
            f"Status: {ticket.status}",
            f"Last message: {ticket.last_message or ticket.description or '—'}",
            "What would you like to do?",
        ]
        return bots(*lines)

    def quick_replies(self, state, context):
        return list(self.REPLIES)

    def handle_input(self, text, state, context):
        lower = text.strip().lower()
        if lower in ("choose another ticket", "choose ticket"):
            return NodeResult(next_node_id="choose_ticket")
        if current_ticket(state, context) is None:
            return None
        if lower == "reply":
            return NodeResult(next_node_id="reply")
        if lower in ("change status", "status"):
            return NodeResult(next_node_id="choose_status")
        return None


class TicketsFlow(FlowBase[TicketsState]):
    flow_id = "admin-tickets"
    title = "Admin Tickets"
    state_class = TicketsState

    def initialize_state(self, context: FlowContext) -> TicketsState:
        ticket_id = context.ticket_id.upper() if context.ticket_id else None
        return TicketsState(
            current_node_id="ticket_overview" if ticket_id else "action",
            current_ticket_id=ticket_id,
        )

    def register_nodes(self) -> None:
        self.register_node("action", TicketActionNode())
        self.register_node("choose_ticket", ChooseTicketNode())
        self.register_node("ticket_overview", TicketOverviewNode())
        self.register_node(
            "choose_status",
            StatusChangeNode("ticket", current_ticket, goto("ticket_overview")),
        )
        self.register_node("reply", ReplyNode(current_ticket, goto("ticket_overview")))


# =============================================================================
# Multiple tickets
# =============================================================================

def target_ticket(state: MultipleTicketsState, context: FlowContext) -> Optional[Ticket]:
    return context.find_ticket(state.current_target_id)


def _current_status_prompt(ticket: Ticket) -> list:
    return [bot(f"Current status of {ticket.id} is {ticket.status}. Choose new status.")]


class MultipleTicketsFlow(FlowBase[MultipleTicketsState]):
    flow_id = "admin-multiple-tickets"
    title = "Admin Multiple Tickets"
    state_class = MultipleTicketsState
    entry_node_id = "multi_start"

    MENU = ["Change Status", "Reply to Ticket", END_CHAT]

    def __init__(self):
        self.status_loop = BulkLoop("ticket", "changed_ids", "choose_id", "choose_status")
        self.reply_loop = BulkLoop("ticket", "replied_ids", "choose_reply_target", "reply")
        super().__init__()

    def initialize_state(self, context: FlowContext) -> MultipleTicketsState:
        selected = tuple(dict.fromkeys(i.upper() for i in context.ticket_ids))
        return MultipleTicketsState(
            current_node_id="multi_start" if len(selected) > 1 else "action",
            selected_ids=selected,
        )

    def register_nodes(self) -> None:
        menu = fixed_replies(*self.MENU)
        self.register_node(
            "multi_start",
            MenuNode(multi_start_prompt("ticket", self.status_loop), menu, self.handle_menu),
        )
        self.register_node("action", MenuNode(multi_action_prompt("ticket"), menu, self.handle_menu))
        self.register_node(
            "choose_id",
            ChooseTargetNode(
                "ticket",
                prompt=fixed_prompt("Which ticket ID would you like to change?"),
                remaining=self.status_loop.remaining,
                next_node_id="choose_status",
                extra_routes={"Change to All in One instead": "choose_bulk_status"},
            ),
        )
        self.register_node(
            "choose_status",
            StatusChangeNode(
                "ticket",
                target_ticket,
                self.status_loop.advance,
                prompt=_current_status_prompt,
            ),
        )
        self.register_node("choose_bulk_status", BulkStatusNode(self.status_loop))
        self.register_node(
            "choose_reply_target",
            ChooseTargetNode(
                "ticket",
                prompt=fixed_prompt("Which ticket ID would you like to reply to?"),
                remaining=self.reply_loop.remaining,
                next_node_id="reply",
            ),
        )
        self.register_node(
            "reply", ReplyNode(target_ticket, self.reply_loop.advance, announce=True)
        )
        self.register_node(
            "done",
            MenuNode(
                fixed_prompt("All selected tickets have been updated. Anything else?"),
                menu,
                self.handle_menu,
            ),
        )

    def handle_menu(
        self, text: str, state: MultipleTicketsState, context: FlowContext
    ) -> Optional[NodeResult]:
        lower = text.strip().lower()
        if lower in ("change status", "status"):
            return NodeResult(
                next_node_id="choose_id",
                state_updates={"changed_ids": frozenset(), "current_target_id": None},
            )
        if lower in ("reply to ticket", "reply"):
            return NodeResult(
                next_node_id="choose_reply_target",
                state_updates={"replied_ids": frozenset(), "current_target_id": None},
            )
        return None
