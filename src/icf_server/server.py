"""
ICF MCP Server - International Classification of Functioning, Disability and Health

This MCP server exposes one tool, ``icf``, whose ``action`` argument selects
between looking up and searching ICF codes, browsing ICF categories,
explaining qualifiers and issuing raw WHO ICD-API requests.

The ICF is a WHO classification that complements ICD (diagnosis codes) by
describing how health conditions affect a person's functioning in daily life.
"""

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import CallToolResult
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .config import Settings
from .errors import ConfigurationError
from .handlers import ACTIONS, ICFParams, handle_action, result_text, text_result
from .reference import ICF_DOCUMENTATION_URL
from .who_client import WHOICFClient

SERVER_NAME = "icf-mcp-server"

# Configure logging to stderr (important for STDIO transport)
logging.basicConfig(
    level=getattr(logging, os.environ.get("ICF_LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# Create the MCP server
mcp = FastMCP(
    "ICF Classification Server",
    instructions='WHO ICF lookup and search. Call the icf tool with {"action": "help"} for usage.',
)

# Global settings and client instance (initialized on first use)
_settings: Settings | None = None
_client: WHOICFClient | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_client() -> WHOICFClient:
    """Get or create the WHO ICF API client"""
    global _client
    if _client is None:
        settings = get_settings()
        settings.require_credentials()

        _client = WHOICFClient(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            release=settings.release,
            language=settings.language,
            timeout=settings.timeout,
        )

    return _client


async def run_icf(params: ICFParams) -> CallToolResult:
    """Resolve the client and dispatch one action"""
    try:
        client = get_client()
    except ConfigurationError as e:
        logger.error(f"Cannot create WHO ICD-API client: {e}")
        return text_result(f"Error: {e}", is_error=True)

    return await handle_action(params, client)


# =============================================================================
# MCP Tools
# =============================================================================

@mcp.tool()
async def icf(
    action: str,
    code: str | None = None,
    query: str | None = None,
    category: str | None = None,
    qualifier: int | None = None,
    max_results: int | None = None,
    path: str | None = None,
) -> str:
    """
    Look up, search and browse the WHO ICF classification.

    ICF (International Classification of Functioning, Disability and Health)
    codes describe how health conditions affect functioning. Code prefixes:
    - b: Body Functions (e.g., b280 = sensation of pain)
    - s: Body Structures (e.g., s750 = structure of lower extremity)
    - d: Activities and Participation (e.g., d450 = walking)
    - e: Environmental Factors (e.g., e120 = assistive products for mobility)

    Actions:
    - lookup (code): full details for a code
    - search (query, max_results): find codes by keyword
    - browse (category): explore the b, s, d or e category
    - children (code): subcodes of a code
    - qualifier (qualifier): explain a severity qualifier (0-4, 8, 9)
    - overview: structure of the ICF
    - api (path): raw WHO ICD-API GET, path starting with "/"
    - help: usage examples

    Args:
        action: The action to run
        code: ICF code for lookup/children (e.g., "b280", "d450")
        query: Search terms for search
        category: Category letter for browse
        qualifier: Qualifier value for qualifier
        max_results: Maximum number of search results (default 10)
        path: API path for api
    """
    result = await run_icf(ICFParams(
        action=action,
        code=code,
        query=query,
        category=category,
        qualifier=qualifier,
        max_results=max_results,
        path=path,
    ))
    text = result_text(result)
    if result.isError:
        raise ToolError(text)
    return text


# =============================================================================
# Health check (HTTP transports only)
# =============================================================================

def health_payload() -> dict:
    return {
        "status": "healthy",
        "server": SERVER_NAME,
        "version": __version__,
        "description": "WHO ICF (International Classification of Functioning) MCP Server",
        "endpoints": {
            "mcp": "/mcp",
            "health": "/health",
        },
        "tool": {
            "name": "icf",
            "actions": list(ACTIONS),
        },
        "documentation": ICF_DOCUMENTATION_URL,
    }


@mcp.custom_route("/health", methods=["GET"])
@mcp.custom_route("/", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse(health_payload(), headers={"Access-Control-Allow-Origin": "*"})


# =============================================================================
# Main entry point
# =============================================================================

def main():
    """Main entry point for the ICF MCP server"""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(2)

    logging.getLogger().setLevel(settings.log_level)

    if not settings.has_credentials:
        logger.warning(
            "WHO ICD-API credentials not set. "
            "Set WHO_ICD_CLIENT_ID and WHO_ICD_CLIENT_SECRET environment variables. "
            "Register at https://icd.who.int/icdapi to obtain credentials."
        )

    logger.info(f"Starting ICF MCP Server ({settings.transport})")
    mcp.run(transport=settings.transport)


if __name__ == "__main__":
    main()
