"""
Node handler contract and the flow engine that drives it.

A flow is a registry of named nodes plus a typed state model. Each turn the
engine hands the raw text to the active node, merges whatever state updates
the node returns, moves to the next node, and renders that node's prompt
unless the node supplied its own messages.

Flows are instantiated once per conversation; nothing here is shared across
conversations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from .messages import END_CHAT, FALLBACK_TEXT, bot, end_chat_message
from .normalizers import is_end_chat
from .state import BotMessage, FlowContext, FlowResponse, FlowState, NodeResult

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT", bound=FlowState)


class NodeHandler(ABC, Generic[StateT]):
    """
    One conversational state.

    messages() and quick_replies() are rendered whenever the node becomes
    active. handle_input() consumes one turn; returning None means the node
    does not recognize the input and the engine falls back to its generic
    reprompt without moving.
    """

    @abstractmethod
    def messages(self, state: StateT, context: FlowContext) -> list[BotMessage]:
        pass

    @abstractmethod
    def quick_replies(self, state: StateT, context: FlowContext) -> list[str]:
        pass

    def handle_input(
        self, text: str, state: StateT, context: FlowContext
    ) -> Optional[NodeResult]:
        return None


class FlowBase(ABC, Generic[StateT]):
    """
    Generic driver for a node graph.

    Subclasses set flow_id, title and state_class, register their nodes in
    register_nodes(), and seed the state in initialize_state().
    """

    flow_id: str
    title: str
    state_class: type[FlowState]
    entry_node_id: str = "action"

    def __init__(self):
        self.nodes: dict[str, NodeHandler] = {}
        self.context = FlowContext()
        self.state: StateT = self.state_class(current_node_id=self.entry_node_id)
        self.ended = False
        self.register_nodes()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def register_nodes(self) -> None:
        pass

    @abstractmethod
    def initialize_state(self, context: FlowContext) -> StateT:
        """Build the starting state, including the entry node, from the context."""

    def register_node(self, node_id: str, handler: NodeHandler) -> None:
        self.nodes[node_id] = handler

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_node_id(self) -> str:
        return self.state.current_node_id

    def initial(self, context: FlowContext) -> list[BotMessage]:
        """Store the context, seed the state and return the entry node's messages."""
        self.context = context
        self.ended = False
        self.state = self.initialize_state(context)
        logger.debug("Flow %s started at node %s", self.flow_id, self.current_node_id)
        return self._current_messages()

    def quick_replies(self) -> list[str]:
        handler = self.nodes.get(self.current_node_id)
        if handler is None:
            return [END_CHAT]
        return handler.quick_replies(self.state, self.context)

    def respond(self, context: FlowContext, text: str) -> FlowResponse:
        """
        Process one turn of admin input.

        The context passed here is ignored in favor of the one stored at
        initial(); hosts pass it for symmetry with the other entry points.
        """
        if is_end_chat(text):
            self.ended = True
            return self._end_chat_response()

        handler = self.nodes.get(self.current_node_id)
        if handler is None:
            logger.warning(
                "Flow %s has no node %r; ending conversation",
                self.flow_id,
                self.current_node_id,
            )
            self.ended = True
            return self._end_chat_response()

        result = handler.handle_input(text, self.state, self.context)
        if result is None:
            return FlowResponse(
                messages=[bot(FALLBACK_TEXT)],
                quick_replies=self.quick_replies(),
            )
        return self._apply_result(result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_result(self, result: NodeResult) -> FlowResponse:
        previous = self.current_node_id
        if result.state_updates:
            unknown = set(result.state_updates) - set(type(self.state).model_fields)
            if unknown:
                raise ValueError(
                    f"{self.flow_id}: unknown state fields {sorted(unknown)}"
                )
            self.state = self.state.model_copy(update=result.state_updates)
        if result.next_node_id:
            self.state = self.state.model_copy(
                update={"current_node_id": result.next_node_id}
            )
        if previous != self.current_node_id:
            logger.debug(
                "Flow %s: %s -> %s", self.flow_id, previous, self.current_node_id
            )

        messages = result.messages
        if messages is None:
            messages = self._current_messages()
        messages = [*result.preamble, *messages]
        quick_replies = result.quick_replies
        if quick_replies is None:
            quick_replies = self.quick_replies()
        return FlowResponse(messages=messages, quick_replies=quick_replies)

    def _current_messages(self) -> list[BotMessage]:
        handler = self.nodes.get(self.current_node_id)
        if handler is None:
            return []
        return handler.messages(self.state, self.context)

    @staticmethod
    def _end_chat_response() -> FlowResponse:
        return FlowResponse(messages=[end_chat_message()], quick_replies=[END_CHAT])


class FlowRegistry:
    """
    Registry of flow classes by flow id.

    Classes rather than instances are stored so every conversation gets a
    fresh flow.
    """

    def __init__(self):
        self._flows: dict[str, type[FlowBase]] = {}

    def register(self, flow_class: type[FlowBase]) -> None:
        self._flows[flow_class.flow_id] = flow_class

    def get(self, flow_id: str) -> Optional[type[FlowBase]]:
        return self._flows.get(flow_id)

    def create(self, flow_id: str) -> FlowBase:
        flow_class = self._flows.get(flow_id)
        if flow_class is None:
            raise KeyError(f"Unknown flow: {flow_id}")
        return flow_class()

    def get_all(self) -> dict[str, type[FlowBase]]:
        return self._flows.copy()

    def __contains__(self, flow_id: str) -> bool:
        return flow_id in self._flows
