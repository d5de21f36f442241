"""Authentication module for the gateway."""

from .app_key import ProxyKeyValidator, require_proxy_key

__all__ = ["ProxyKeyValidator", "require_proxy_key"]
