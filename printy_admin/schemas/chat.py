"""
Chat Schemas for the Printy Admin Assistant
===========================================

Pydantic models for the admin chat endpoints. A conversation is opened on a
topic (or from a free-text command), then driven one admin message at a time.

Endpoint Coverage:
------------------
- POST /admin/chat/start: Open a conversation on a topic
- POST /admin/chat/message: Send one admin message
- POST /admin/chat/command: Open a conversation from a free-text command
- GET /admin/chat/{session_id}: Current node, quick replies and transcript

Validation:
-----------
- Messages are 1..MAX_MESSAGE_LENGTH characters.
- Subject ids are free strings; unknown ids surface as "... not found." in
  the conversation rather than as request errors.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import MAX_MESSAGE_LENGTH


class ChatMessageOut(BaseModel):
    """One utterance in a response or transcript."""
    role: str
    text: str


class ChatStartRequest(BaseModel):
    """
    Request body for opening a conversation.

    Attributes:
        topic: Router topic, e.g. "orders", "multiple-tickets", "add-service".
               Omitted or unknown topics open the admin intro.
        subject_id: The entity the admin is looking at, if any
        subject_ids: The selected entities for a bulk topic
        session_id: Reuse this id; an existing conversation is replaced
    """
    topic: Optional[str] = None
    subject_id: Optional[str] = None
    subject_ids: List[str] = Field(default_factory=list)
    session_id: Optional[str] = None


class ChatStartResponse(BaseModel):
    session_id: str
    flow_id: str
    title: str
    messages: List[ChatMessageOut]
    quick_replies: List[str]


class ChatMessageRequest(BaseModel):
    """
    Request body for one admin turn.

    Attributes:
        session_id: Conversation id returned by /start or /command
        message: Free text or a quick reply label
    """
    session_id: str
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatMessageResponse(BaseModel):
    """
    Bot reply to one admin turn.

    ended is true once the admin has said "End Chat"; the conversation stays
    readable until it is deleted or expires.
    """
    session_id: str
    flow_id: str
    messages: List[ChatMessageOut]
    quick_replies: List[str]
    ended: bool = False


class ChatCommandRequest(BaseModel):
    """Free-text command such as "update orders ORD-12349 and ORD-12350"."""
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatSessionOut(BaseModel):
    session_id: str
    flow_id: str
    topic: Optional[str] = None
    current_node_id: str
    quick_replies: List[str]
    ended: bool
    transcript: List[ChatMessageOut]
