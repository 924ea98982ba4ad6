"""Authentication module for DevOps Test MCP.

Provides bearer-token lifecycle management for the two supported schemes.

Usage:
    from devops_test_mcp.auth import DirectTokenAuth

    auth = DirectTokenAuth(server_url=url, personal_access_token=pat)
    header = await auth.get_authorization_header()  # "Bearer ..."
"""

from .brokered import BrokeredAuth, DEFAULT_REALM
from .direct import DirectTokenAuth
from .errors import AuthError, ConfigError, ExchangeError, NetworkError
from .factory import create_auth_provider
from .provider import AuthProvider
from .tokens import AuthResult, TokenState, EXPIRY_BUFFER_SECONDS

__all__ = [
    "AuthProvider",
    "BrokeredAuth",
    "DirectTokenAuth",
    "AuthResult",
    "TokenState",
    "AuthError",
    "ConfigError",
    "ExchangeError",
    "NetworkError",
    "create_auth_provider",
    "DEFAULT_REALM",
    "EXPIRY_BUFFER_SECONDS",
]
