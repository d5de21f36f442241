"""API routes for the gateway."""

from .chat import chat_completions, validate_chat_request
from .models import list_models, root_status

__all__ = [
    "chat_completions",
    "list_models",
    "root_status",
    "validate_chat_request",
]
