"""
ICF Server - International Classification of Functioning, Disability and Health

A Model Context Protocol (MCP) server that exposes the WHO ICF classification
through a single action-dispatching tool.
"""

__version__ = "1.0.0"

from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    ICFError,
    ValidationError,
)
from .handlers import ICFParams, handle_action
from .server import main, mcp
from .who_client import ICFEntity, ICFSearchResult, WHOICFClient

__all__ = [
    "main",
    "mcp",
    "handle_action",
    "ICFParams",
    "WHOICFClient",
    "ICFEntity",
    "ICFSearchResult",
    "ICFError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "ApiError",
]
