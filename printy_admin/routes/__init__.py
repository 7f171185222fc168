"""
Routes Package for the Printy Admin Assistant
=============================================

- chat.py: admin chat conversations (start, message, command, history)

Router Registration:
--------------------
Routers are registered in main.py under two prefixes:
1. /api/v1/* - Versioned API (recommended)
2. /* - Root paths for backward compatibility
"""

from .chat import chat_router, limiter

__all__ = ["chat_router", "limiter"]
