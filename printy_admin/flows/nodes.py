"""
Reusable node handlers.

The flows differ mostly in which entity a node acts on and where the
conversation goes afterwards, so every node here takes two callables:

- a target accessor, (state, context) -> entity or None;
- a continuation, (state, context, entity_id, messages) -> NodeResult, that
  decides the next node once the change has been applied.

BulkLoop provides the continuation shared by all bulk flows: with more than
one selected entity left it returns to the picker, with exactly one it goes
straight to the field node for that entity, and with none it finishes.
"""

import logging
from typing import Any, Callable, Optional, Union

from .base import NodeHandler
from .messages import (
    END_CHAT,
    bot,
    bots,
    category_moved_message,
    not_found_message,
    quote_created_message,
    selection_list_messages,
    service_updated_message,
    status_change_message,
    ticket_reply_message,
    with_end_chat,
)
from .normalizers import (
    STATUS_OPTIONS,
    extract_ids,
    format_price_input,
    is_valid_price_input,
    is_valid_ticket_reply,
    normalize_status,
)
from .state import BotMessage, FlowContext, FlowState, NodeResult, Order, Service, Ticket

logger = logging.getLogger(__name__)

Entity = Union[Order, Ticket, Service]
Target = Callable[[FlowState, FlowContext], Optional[Entity]]
Continuation = Callable[[FlowState, FlowContext, str, list[BotMessage]], NodeResult]
Prompt = Callable[[FlowState, FlowContext], list[BotMessage]]
Replies = Callable[[FlowState, FlowContext], list[str]]


def goto(node_id: str, **state_updates) -> Continuation:
    """Continuation that moves to a fixed node after showing the change."""

    def _continue(state, context, entity_id, messages):
        return NodeResult(
            next_node_id=node_id, preamble=messages, state_updates=dict(state_updates)
        )

    return _continue


def not_found(kind: str, fallback_node_id: str) -> NodeResult:
    return NodeResult(
        next_node_id=fallback_node_id, preamble=[not_found_message(kind)]
    )


# -----------------------------------------------------------------------------
# Bulk progression
# -----------------------------------------------------------------------------

class BulkLoop:
    """
    Tracks which selected entities a bulk sequence has handled.

    processed_field names a frozenset on the flow state; eligible optionally
    narrows the selection (e.g. only orders awaiting payment verification).
    """

    def __init__(
        self,
        kind: str,
        processed_field: str,
        picker_node_id: str,
        field_node_id: str,
        done_node_id: str = "done",
        target_field: str = "current_target_id",
        eligible: Optional[Callable[[Entity], bool]] = None,
    ):
        self.kind = kind
        self.processed_field = processed_field
        self.picker_node_id = picker_node_id
        self.field_node_id = field_node_id
        self.done_node_id = done_node_id
        self.target_field = target_field
        self.eligible = eligible

    def selected(self, state: FlowState, context: FlowContext) -> list[Entity]:
        entities = []
        seen = set()
        for entity_id in state.selected_ids:
            entity = context.find(self.kind, entity_id)
            if entity is None or entity.id in seen:
                continue
            if self.eligible is not None and not self.eligible(entity):
                continue
            seen.add(entity.id)
            entities.append(entity)
        return entities

    def remaining(
        self, state: FlowState, context: FlowContext, processed: Optional[frozenset] = None
    ) -> list[Entity]:
        if processed is None:
            processed = getattr(state, self.processed_field)
        return [e for e in self.selected(state, context) if e.id not in processed]

    def advance(
        self, state: FlowState, context: FlowContext, entity_id: str, messages: list[BotMessage]
    ) -> NodeResult:
        processed = frozenset(getattr(state, self.processed_field) | {entity_id})
        remaining = self.remaining(state, context, processed)
        updates: dict[str, Any] = {self.processed_field: processed}

        if len(remaining) > 1:
            next_node = self.picker_node_id
            updates[self.target_field] = None
        elif len(remaining) == 1:
            next_node = self.field_node_id
            updates[self.target_field] = remaining[0].id
        else:
            next_node = self.done_node_id
            updates[self.target_field] = None

        logger.debug(
            "%s loop: %s done, %d remaining -> %s",
            self.kind,
            entity_id,
            len(remaining),
            next_node,
        )
        return NodeResult(next_node_id=next_node, preamble=messages, state_updates=updates)


# -----------------------------------------------------------------------------
# Generic nodes
# -----------------------------------------------------------------------------

class StaticNode(NodeHandler):
    """Fixed prompt plus a table of quick replies that jump to other nodes."""

    def __init__(self, texts: list[str], replies: list[str], routes: Optional[dict[str, str]] = None):
        self.texts = texts
        self.replies = replies
        self.routes = {key.lower(): node for key, node in (routes or {}).items()}

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        return bots(*self.texts)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return list(self.replies)

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        node_id = self.routes.get(text.strip().lower())
        if node_id is None:
            return None
        return NodeResult(next_node_id=node_id)


class MenuNode(NodeHandler):
    """Prompt and quick replies supplied by the flow, input delegated back to it."""

    def __init__(
        self,
        prompt: Prompt,
        replies: Replies,
        on_input: Callable[[str, FlowState, FlowContext], Optional[NodeResult]],
    ):
        self.prompt = prompt
        self.replies = replies
        self.on_input = on_input

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        return self.prompt(state, context)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return self.replies(state, context)

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        return self.on_input(text, state, context)


def multi_start_prompt(kind: str, loop: BulkLoop) -> Prompt:
    """Opening of a bulk flow: a summary line per selected entity."""

    def _prompt(state, context):
        selected = loop.selected(state, context)
        messages = [
            bot(f"Multiple {kind}s assistant ready ({len(selected)} selected)."),
            bot("You selected:"),
        ]
        messages += selection_list_messages([e.selection_row() for e in selected], kind)
        messages.append(bot(f"What do you want to do with these {kind}s?"))
        return messages

    return _prompt


def multi_action_prompt(kind: str) -> Prompt:
    def _prompt(state, context):
        return [
            bot(
                f"You selected {len(state.selected_ids)} {kind}s. "
                f"What do you want to do with these {kind}s?"
            )
        ]

    return _prompt


def fixed_prompt(*texts: str) -> Prompt:
    return lambda state, context: bots(*texts)


def fixed_replies(*replies: str) -> Replies:
    return lambda state, context: list(replies)


class ChooseTargetNode(NodeHandler):
    """
    Picker over the entities a loop still has to process.

    Accepts a typed ID anywhere in the text, an exact ID, or for labelled
    replies ("SRV-1 - Flyers") the label itself. Anything outside the
    remaining set is rejected with a reprompt.
    """

    def __init__(
        self,
        kind: str,
        prompt: Prompt,
        remaining: Callable[[FlowState, FlowContext], list[Entity]],
        next_node_id: str,
        target_field: str = "current_target_id",
        extra_routes: Optional[dict[str, str]] = None,
        label: Callable[[Entity], str] = lambda entity: entity.id,
        reject_text: Optional[str] = None,
    ):
        self.kind = kind
        self.prompt = prompt
        self.remaining = remaining
        self.next_node_id = next_node_id
        self.target_field = target_field
        self.extra_routes = extra_routes or {}
        self.label = label
        self.reject_text = reject_text or f"Please pick one of the selected {kind} IDs."

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        return self.prompt(state, context)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        options = [self.label(e) for e in self.remaining(state, context)]
        return with_end_chat([*options, *self.extra_routes])

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        lower = text.strip().lower()
        for reply, node_id in self.extra_routes.items():
            if lower == reply.lower():
                return NodeResult(next_node_id=node_id)

        remaining = self.remaining(state, context)
        ids = extract_ids(self.kind, text)
        pick = None
        if ids:
            pick = next((e for e in remaining if e.id.upper() == ids[0]), None)
            if pick is None and self.kind == "service":
                pick = next((e for e in remaining if e.code.upper() == ids[0]), None)
        else:
            pick = next(
                (
                    e
                    for e in remaining
                    if lower
                    and (
                        e.id.lower() == lower
                        or self.label(e).lower() == lower
                        or getattr(e, "name", "").lower() == lower
                    )
                ),
                None,
            )

        if pick is None:
            return NodeResult(
                messages=[bot(self.reject_text)],
                quick_replies=self.quick_replies(state, context),
            )

        return NodeResult(
            next_node_id=self.next_node_id, state_updates={self.target_field: pick.id}
        )


# -----------------------------------------------------------------------------
# Status nodes
# -----------------------------------------------------------------------------

def _default_status_prompt(entity: Entity) -> list[BotMessage]:
    return [bot(f"What status would you like to set for {entity.id}?")]


def _default_status_message(entity: Entity, previous: str, new: str) -> BotMessage:
    return status_change_message(entity.id, previous, new)


class StatusChangeNode(NodeHandler):
    """Set a single entity's status from a canonical option or a recognizable prefix."""

    def __init__(
        self,
        kind: str,
        target: Target,
        then: Continuation,
        fallback_node_id: str = "action",
        prompt: Callable[[Entity], list[BotMessage]] = _default_status_prompt,
        message: Callable[[Entity, str, str], BotMessage] = _default_status_message,
    ):
        self.kind = kind
        self.target = target
        self.then = then
        self.fallback_node_id = fallback_node_id
        self.prompt = prompt
        self.message = message

    @property
    def options(self) -> list[str]:
        return STATUS_OPTIONS[self.kind]

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        entity = self.target(state, context)
        if entity is None:
            return [not_found_message(self.kind)]
        return self.prompt(entity)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return with_end_chat(self.options)

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        entity = self.target(state, context)
        if entity is None:
            return not_found(self.kind, self.fallback_node_id)

        new_status = normalize_status(self.kind, text)
        if new_status is None:
            return NodeResult(
                messages=[bot(f"Valid statuses: {', '.join(self.options)}")],
                quick_replies=with_end_chat(self.options),
            )

        previous = entity.status
        context.apply_update(self.kind, entity.id, {"status": new_status})
        logger.info("%s %s status: %s -> %s", self.kind, entity.id, previous, new_status)
        return self.then(state, context, entity.id, [self.message(entity, previous, new_status)])


class BulkStatusNode(NodeHandler):
    """Apply one status to every selected entity in a single turn."""

    def __init__(self, loop: BulkLoop, done_node_id: str = "done"):
        self.loop = loop
        self.done_node_id = done_node_id

    @property
    def options(self) -> list[str]:
        return STATUS_OPTIONS[self.loop.kind]

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        return [bot("Okay, apply one status to all selected. What status?")]

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return with_end_chat(self.options)

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        new_status = normalize_status(self.loop.kind, text)
        if new_status is None:
            return NodeResult(
                messages=[bot("Please choose a valid status.")],
                quick_replies=with_end_chat(self.options),
            )

        selected = self.loop.selected(state, context)
        messages = [bot(f"✅ Applying {new_status} to {len(selected)} {self.loop.kind}(s):")]
        for entity in selected:
            previous = entity.status
            context.apply_update(self.loop.kind, entity.id, {"status": new_status})
            messages.append(bot(f"{entity.id}: {previous} → {new_status}"))
        logger.info(
            "Bulk %s status -> %s for %s",
            self.loop.kind,
            new_status,
            ", ".join(e.id for e in selected),
        )
        return NodeResult(
            next_node_id=self.done_node_id,
            preamble=messages,
            state_updates={
                self.loop.processed_field: frozenset(e.id for e in selected),
                self.loop.target_field: None,
            },
        )


# -----------------------------------------------------------------------------
# Orders: quotes and payment verification
# -----------------------------------------------------------------------------

PRICE_EXAMPLES = "(e.g., 3800, 3,800, or ₱3,800)"


class QuotePriceNode(NodeHandler):
    """
    Record a quote for an order.

    A quoted order always goes back to Pending, whatever its prior status.
    """

    def __init__(self, target: Target, then: Continuation, fallback_node_id: str = "action"):
        self.target = target
        self.then = then
        self.fallback_node_id = fallback_node_id

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        order = self.target(state, context)
        if order is None:
            return [not_found_message("order")]
        return bots(
            f"Creating quote for {order.id} ({order.customer}).",
            f"Please enter the quote amount {PRICE_EXAMPLES}.",
        )

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return [END_CHAT]

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        order = self.target(state, context)
        if order is None:
            return not_found("order", self.fallback_node_id)

        if not (is_valid_price_input(text) or any(ch.isdigit() for ch in text)):
            return NodeResult(
                messages=[bot(f"Please enter a valid price amount {PRICE_EXAMPLES}.")],
                quick_replies=[END_CHAT],
            )

        total = format_price_input(text.strip())
        context.apply_update("order", order.id, {"status": "Pending", "total": total})
        logger.info("Quote for %s set to %s", order.id, total)
        return self.then(state, context, order.id, [quote_created_message(order.id, total)])


VERIFY_REPLIES = ["Confirm Payment", "Deny Payment", END_CHAT]


def proof_of_payment_messages(order: Order) -> list[BotMessage]:
    uploaded = order.proof_uploaded_at or "—"
    image = f"({order.proof_of_payment_url})" if order.proof_of_payment_url else ""
    return bots(
        f"Here is the proof of payment of customer {order.customer} {order.id}. "
        f"Uploaded on {uploaded}. Their total balance is {order.total}.",
        image,
    )


class VerifyPaymentNode(NodeHandler):
    """
    Confirm or deny an uploaded proof of payment.

    lock_field names a frozenset of order ids already decided in this
    conversation. A repeated decision for one of them is routed to
    repeat_node_id without touching the order again, as is a decision
    for an order no longer in Verifying Payment.
    """

    def __init__(
        self,
        target: Target,
        then: Continuation,
        lock_field: str = "verified_ids",
        repeat_node_id: str = "done",
        fallback_node_id: str = "action",
    ):
        self.target = target
        self.then = then
        self.lock_field = lock_field
        self.repeat_node_id = repeat_node_id
        self.fallback_node_id = fallback_node_id

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        order = self.target(state, context)
        if order is None:
            return [not_found_message("order")]
        return proof_of_payment_messages(order)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return list(VERIFY_REPLIES)

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        lower = text.strip().lower()
        if lower.startswith("confirm"):
            new_status = "For Delivery/Pick-up"
        elif lower.startswith("deny"):
            new_status = "Awaiting Payment"
        else:
            return None

        order = self.target(state, context)
        if order is None:
            return not_found("order", self.fallback_node_id)

        locked = getattr(state, self.lock_field)
        if order.id in locked:
            logger.info("Ignoring repeated payment decision for %s", order.id)
            return NodeResult(next_node_id=self.repeat_node_id)
        # Snapshot is patched on write, so a stale state still sees the decision.
        if not order.is_verifying_payment:
            logger.info("Ignoring payment decision for %s in status %s", order.id, order.status)
            return NodeResult(next_node_id=self.repeat_node_id)

        context.apply_update("order", order.id, {"status": new_status})
        logger.info("Payment for %s: %s", order.id, new_status)
        if new_status == "For Delivery/Pick-up":
            message = bot(f"✅ {order.id}: Verifying Payment → For Delivery/Pick-up")
        else:
            message = bot(
                f"⏪ {order.id}: Set back to Awaiting Payment. "
                "Customer will be asked to re-upload proof."
            )
        # The lock goes into state before the continuation picks the next node.
        state = state.model_copy(update={self.lock_field: frozenset(locked | {order.id})})
        result = self.then(state, context, order.id, [message])
        result.state_updates.setdefault(self.lock_field, getattr(state, self.lock_field))
        return result


# -----------------------------------------------------------------------------
# Tickets
# -----------------------------------------------------------------------------

class ReplyNode(NodeHandler):
    """Post a reply to a ticket; the text becomes the ticket's last message."""

    def __init__(
        self,
        target: Target,
        then: Continuation,
        fallback_node_id: str = "action",
        announce: bool = False,
    ):
        self.target = target
        self.then = then
        self.fallback_node_id = fallback_node_id
        self.announce = announce

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        ticket = self.target(state, context)
        if ticket is None:
            return [not_found_message("ticket")]
        texts = []
        if self.announce:
            texts.append(f"Replying to {ticket.id} - {ticket.subject}.")
        texts.append("Type your reply message to send to the user.")
        return bots(*texts)

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return [END_CHAT]

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        ticket = self.target(state, context)
        if ticket is None:
            return not_found("ticket", self.fallback_node_id)

        reply = text.strip()
        if not is_valid_ticket_reply(reply):
            hint = "Please type a reply message."
            if reply:
                hint = "Replies are limited to 1000 characters. Please shorten your message."
            return NodeResult(messages=[bot(hint)], quick_replies=[END_CHAT])

        context.apply_update("ticket", ticket.id, {"last_message": reply})
        logger.info("Reply posted to %s", ticket.id)
        return self.then(state, context, ticket.id, [ticket_reply_message(ticket.id)])


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------

class TextFieldNode(NodeHandler):
    """Free-text edit of one service field (name or category)."""

    def __init__(
        self,
        field: str,
        target: Target,
        then: Continuation,
        validator: Callable[[str], bool],
        fallback_node_id: str = "action",
    ):
        self.field = field
        self.target = target
        self.then = then
        self.validator = validator
        self.fallback_node_id = fallback_node_id

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        service = self.target(state, context)
        if service is None:
            return [not_found_message("service")]
        current = getattr(service, self.field)
        return [bot(f"Current {self.field}: {current}. What should the new {self.field} be?")]

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        return [END_CHAT]

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        service = self.target(state, context)
        if service is None:
            return not_found("service", self.fallback_node_id)

        value = text.strip()
        if not self.validator(value):
            return NodeResult(
                messages=[bot(f"Please provide a new {self.field} for the service.")],
                quick_replies=[END_CHAT],
            )

        old = getattr(service, self.field)
        context.apply_update("service", service.id, {self.field: value})
        logger.info("Service %s %s: %r -> %r", service.code, self.field, old, value)
        return self.then(
            state,
            context,
            service.id,
            [service_updated_message(service.code, self.field, old, value)],
        )


class MoveCategoryNode(NodeHandler):
    """Move a service into one of the other categories already in use."""

    def __init__(self, target: Target, then: Continuation, fallback_node_id: str = "action"):
        self.target = target
        self.then = then
        self.fallback_node_id = fallback_node_id

    @staticmethod
    def other_categories(service: Service, context: FlowContext) -> list[str]:
        return [c for c in context.existing_categories() if c != service.category]

    def messages(self, state: FlowState, context: FlowContext) -> list[BotMessage]:
        service = self.target(state, context)
        if service is None:
            return [not_found_message("service")]
        others = self.other_categories(service, context)
        if not others:
            return [bot(f"There are no other categories to move {service.name} to.")]
        return bots(
            f'Moving {service.name} from "{service.category}" to another category.',
            f"Available categories: {', '.join(others)}",
        )

    def quick_replies(self, state: FlowState, context: FlowContext) -> list[str]:
        service = self.target(state, context)
        if service is None:
            return [END_CHAT]
        return with_end_chat(self.other_categories(service, context))

    def handle_input(
        self, text: str, state: FlowState, context: FlowContext
    ) -> Optional[NodeResult]:
        service = self.target(state, context)
        if service is None:
            return not_found("service", self.fallback_node_id)

        others = self.other_categories(service, context)
        lower = text.strip().lower()
        chosen = next((c for c in others if c.lower() == lower), None)
        if chosen is None and lower:
            chosen = next(
                (c for c in others if lower in c.lower() or c.lower() in lower), None
            )
        if chosen is None:
            return NodeResult(
                messages=[bot(f"Please select a valid category: {', '.join(others)}")],
                quick_replies=with_end_chat(others),
            )

        old = service.category
        context.apply_update("service", service.id, {"category": chosen})
        logger.info("Service %s moved: %r -> %r", service.code, old, chosen)
        return self.then(
            state, context, service.id, [category_moved_message(service.name, old, chosen)]
        )
