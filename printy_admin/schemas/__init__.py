"""
Pydantic request/response schemas for the Printy admin API.

- **chat**: admin chat endpoints (start, message, command, history)
"""

from . import chat

__all__ = ["chat"]
