"""
Configuration Module for the Printy Admin Assistant
===================================================

This module centralizes the settings and environment variables used by the
admin chat assistant. All values are read once at import time so the rest of
the package can import plain constants.

Configuration Categories:
-------------------------
- **Database**: Where the host record store (orders, tickets, services) lives.

- **Rate Limiting**: Throttling for the chat endpoints, keyed by session id.

- **Session Management**: TTL and cache size for the in-memory conversation
  store. Each admin conversation owns one flow instance in that store.

- **Input Validation**: Maximum length of a single chat turn.

- **CORS Settings**: Allowed origins for the dashboard frontend.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL for the record store (default: local SQLite file)
- SEED_ON_STARTUP: Load the sample records into an empty database (default: "true")
- RATE_LIMIT_CHAT: Chat endpoint rate limit (default: "60 per minute")
- RATE_LIMIT_ENABLED: Enable/disable rate limiting (default: "true")
- SESSION_TTL_SECONDS: Conversation TTL in the store (default: 3600)
- SESSION_MAX_CACHE_SIZE: Max live conversations (default: 500)
- MAX_MESSAGE_LENGTH: Max admin message length (default: 1000)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")

Usage:
------
    from printy_admin.config import (
        RATE_LIMIT_CHAT,
        SESSION_TTL_SECONDS,
        MAX_MESSAGE_LENGTH,
    )
"""

import os
from typing import List


# =============================================================================
# Database Configuration
# =============================================================================
# The flows never talk to the database directly. The host layer reads records
# into a FlowContext snapshot and hands the flows mutator callbacks.

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./printy_admin.db")

# Load the sample orders/tickets/services when the tables are empty
SEED_ON_STARTUP: bool = os.getenv("SEED_ON_STARTUP", "true").lower() == "true"


# =============================================================================
# Rate Limiting Configuration
# =============================================================================
# Rate limit format: "X per Y" where Y is second, minute, hour, or day

RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "60 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_chat() -> str:
    """
    Return the current chat rate limit.

    This function allows dynamic override in tests without modifying
    the module-level constant.
    """
    return RATE_LIMIT_CHAT


# =============================================================================
# Session Management Configuration
# =============================================================================
# Conversations are never persisted. A conversation that is not touched within
# the TTL is dropped, and the least recently used ones are evicted when the
# store is full.

SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))  # 1 hour

SESSION_MAX_CACHE_SIZE: int = int(os.getenv("SESSION_MAX_CACHE_SIZE", "500"))


# =============================================================================
# Input Validation Configuration
# =============================================================================

# Ticket replies are capped at 1000 characters, so a longer turn is never useful
MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "1000"))


# =============================================================================
# CORS Configuration
# =============================================================================
# Format: comma-separated list of origins, e.g. "https://admin.example.com"

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]
