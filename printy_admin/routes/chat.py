"""
Admin Chat Routes
=================

Endpoints that drive the admin assistant conversations.

Endpoints:
----------
- POST /admin/chat/start: Open a conversation on a topic
- POST /admin/chat/message: Send one admin message
- POST /admin/chat/command: Open a conversation from a free-text command
- GET /admin/chat/{session_id}: Current state and transcript
- DELETE /admin/chat/{session_id}: Discard a conversation

Conversation Flow:
------------------
1. The dashboard calls /start with a topic and the selected records
2. The response carries the session_id, opening messages and quick replies
3. Each admin message goes to /message; record changes are committed as the
   flow applies them
4. "End Chat" ends the conversation; it stays readable until deleted or expired

Rate Limiting:
--------------
All chat endpoints are rate limited (default: 60/minute), keyed by session id
when the request carries one and by client address otherwise.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import sessionmaker

from ..config import RATE_LIMIT_ENABLED, get_rate_limit_chat
from ..db import get_session_factory
from ..flows.messages import END_CHAT, bot, end_chat_message
from ..flows.router import dispatch_command, resolve_flow
from ..flows.state import BotMessage, FlowResponse
from ..schemas.chat import (
    ChatCommandRequest,
    ChatMessageOut,
    ChatMessageRequest,
    ChatMessageResponse,
    ChatSessionOut,
    ChatStartRequest,
    ChatStartResponse,
)
from ..services.records import RecordService, build_context
from ..services.session import ConversationSession, ConversationStore, conversation_store

logger = logging.getLogger(__name__)

chat_router = APIRouter(prefix="/admin/chat", tags=["Admin Chat"])

ERROR_REPLY = "Sorry, something went wrong while updating the records. Please try again."


# =============================================================================
# Rate Limiting Setup
# =============================================================================

def get_session_id_or_ip(request: Request) -> str:
    """Get rate limit key from the session id or fall back to IP."""
    session_id = request.path_params.get("session_id") or request.headers.get("x-session-id")
    if session_id:
        return f"session:{session_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_session_id_or_ip, enabled=RATE_LIMIT_ENABLED)


# =============================================================================
# Dependencies & Helpers
# =============================================================================

def get_conversation_store() -> ConversationStore:
    return conversation_store


def get_records(factory: sessionmaker = Depends(get_session_factory)) -> RecordService:
    return RecordService(factory)


def _out(messages: List[BotMessage]) -> List[ChatMessageOut]:
    return [ChatMessageOut(role=m.role, text=m.text) for m in messages]


def _require(store: ConversationStore, session_id: str) -> ConversationSession:
    conversation = store.get(session_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def _take_turn(conversation: ConversationSession, text: str) -> FlowResponse:
    flow = conversation.flow
    if flow.ended:
        return FlowResponse(messages=[end_chat_message()], quick_replies=[END_CHAT])
    try:
        return flow.respond(conversation.context, text)
    except Exception:
        logger.error(
            "Flow %s failed at node %s", flow.flow_id, flow.current_node_id, exc_info=True
        )
        return FlowResponse(messages=[bot(ERROR_REPLY)], quick_replies=flow.quick_replies())


# =============================================================================
# Endpoints
# =============================================================================

@chat_router.post("/start", response_model=ChatStartResponse)
@limiter.limit(get_rate_limit_chat)
def chat_start(
    request: Request,
    req: ChatStartRequest,
    records: RecordService = Depends(get_records),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatStartResponse:
    """Open a conversation; an existing session id is replaced by a fresh flow."""
    flow = resolve_flow(req.topic)
    context = build_context(records, flow.flow_id, req.subject_id, req.subject_ids)
    messages = flow.initial(context)

    conversation = store.create(flow, req.topic, context, session_id=req.session_id)
    conversation.record_bot(messages)

    return ChatStartResponse(
        session_id=conversation.session_id,
        flow_id=flow.flow_id,
        title=flow.title,
        messages=_out(messages),
        quick_replies=flow.quick_replies(),
    )


@chat_router.post("/message", response_model=ChatMessageResponse)
@limiter.limit(get_rate_limit_chat)
def chat_message(
    request: Request,
    req: ChatMessageRequest,
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatMessageResponse:
    """Send one admin message to the conversation's flow."""
    conversation = _require(store, req.session_id)
    conversation.record_user(req.message)

    response = _take_turn(conversation, req.message)
    conversation.record_bot(response.messages)

    flow = conversation.flow
    return ChatMessageResponse(
        session_id=conversation.session_id,
        flow_id=flow.flow_id,
        messages=_out(response.messages),
        quick_replies=response.quick_replies or flow.quick_replies(),
        ended=flow.ended,
    )


@chat_router.post("/command", response_model=ChatStartResponse)
@limiter.limit(get_rate_limit_chat)
def chat_command(
    request: Request,
    req: ChatCommandRequest,
    records: RecordService = Depends(get_records),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatStartResponse:
    """Open the conversation a free-text command points at."""
    context = build_context(records, "")
    result = dispatch_command(req.message, context)

    conversation = store.create(result.flow, None, result.context)
    conversation.record_user(req.message)
    conversation.record_bot(result.messages)

    return ChatStartResponse(
        session_id=conversation.session_id,
        flow_id=result.flow.flow_id,
        title=result.flow.title,
        messages=_out(result.messages),
        quick_replies=result.quick_replies,
    )


@chat_router.get("/{session_id}", response_model=ChatSessionOut)
@limiter.limit(get_rate_limit_chat)
def chat_session(
    request: Request,
    session_id: str,
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatSessionOut:
    conversation = _require(store, session_id)
    flow = conversation.flow
    return ChatSessionOut(
        session_id=conversation.session_id,
        flow_id=flow.flow_id,
        topic=conversation.topic,
        current_node_id=flow.current_node_id,
        quick_replies=[END_CHAT] if flow.ended else flow.quick_replies(),
        ended=flow.ended,
        transcript=[ChatMessageOut(**entry) for entry in conversation.transcript],
    )


@chat_router.delete("/{session_id}", status_code=204)
@limiter.limit(get_rate_limit_chat)
def chat_delete(
    request: Request,
    session_id: str,
    store: ConversationStore = Depends(get_conversation_store),
) -> None:
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
