"""API module for the gateway."""

from .routes import chat_completions, list_models, root_status, validate_chat_request

__all__ = [
    "chat_completions",
    "list_models",
    "root_status",
    "validate_chat_request",
]
