"""
ICF action dispatcher.

A single ``icf`` tool takes an ``action`` tag plus loosely-typed parameters;
this module validates them, calls the WHO client and renders the outcome as
markdown text.
"""

import json
import logging

import httpx
from mcp.types import CallToolResult, TextContent
from pydantic import BaseModel, Field

from .errors import ICFError, ValidationError
from .reference import (
    HELP_TEXT,
    OVERVIEW_TEXT,
    QUALIFIER_SHORT_LABELS,
    get_qualifier,
)
from .who_client import DEFAULT_MAX_RESULTS, ICFEntity, WHOICFClient

logger = logging.getLogger(__name__)

ACTIONS = ("lookup", "search", "browse", "children", "qualifier", "overview", "api", "help")

BROWSE_SAMPLE_SIZE = 10


class ICFParams(BaseModel):
    """Arguments of the ``icf`` tool"""

    action: str = Field(description=f"One of: {', '.join(ACTIONS)}")
    code: str | None = Field(default=None, description="ICF code (e.g., b280, d450, s750)")
    query: str | None = Field(default=None, description="Search terms")
    category: str | None = Field(default=None, description="Category letter: b, s, d, or e")
    qualifier: int | None = Field(default=None, description="Qualifier value (0-4, 8, or 9)")
    max_results: int | None = Field(default=None, description="Maximum results (default 10)")
    path: str | None = Field(default=None, description="API path for raw requests")


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def result_text(result: CallToolResult) -> str:
    """Concatenated text of a tool result"""
    return "\n".join(item.text for item in result.content if isinstance(item, TextContent))


def format_entity(entity: ICFEntity) -> str:
    """Format an ICF entity for display"""
    lines = [
        f"**{entity.code}**: {entity.title}",
    ]

    if entity.definition:
        lines.append(f"\n**Definition:** {entity.definition}")

    if entity.inclusions:
        lines.append("\n**Includes:**")
        for inc in entity.inclusions:
            lines.append(f"  - {inc}")

    if entity.exclusions:
        lines.append("\n**Excludes:**")
        for exc in entity.exclusions:
            lines.append(f"  - {exc}")

    return "\n".join(lines)


def _require(value, name: str, action: str):
    if value is None or value == "":
        raise ValidationError(f"{name} required for {action}")
    return value


async def handle_action(params: ICFParams, client: WHOICFClient) -> CallToolResult:
    """
    Run one ``icf`` action.

    Never raises: every failure comes back as an error-flagged result.
    """
    try:
        match params.action:
            case "lookup":
                code = _require(params.code, "code", "lookup")
                return await handle_lookup(code, client)

            case "search":
                query = _require(params.query, "query", "search")
                max_results = params.max_results
                if max_results is None:
                    max_results = DEFAULT_MAX_RESULTS
                elif max_results < 1:
                    raise ValidationError("max_results must be a positive integer")
                return await handle_search(query, max_results, client)

            case "browse":
                category = _require(params.category, "category", "browse")
                return await handle_browse(category, client)

            case "children":
                code = _require(params.code, "code", "children")
                return await handle_children(code, client)

            case "qualifier":
                qualifier = _require(params.qualifier, "qualifier value", "qualifier")
                return handle_qualifier(qualifier)

            case "overview":
                return handle_overview()

            case "api":
                path = _require(params.path, "path", "api")
                return await handle_api(path, client)

            case "help":
                return handle_help()

            case _:
                return text_result(f"Unknown action: {params.action}", is_error=True)

    except Exception as e:
        logger.error(f"Error running ICF action '{params.action}': {e}")
        return text_result(f"Error: {e}", is_error=True)


async def handle_lookup(code: str, client: WHOICFClient) -> CallToolResult:
    entity = await client.get_entity_by_code(code)

    if entity is None:
        return text_result(
            f"ICF code '{code}' not found. "
            f'Use {{"action": "search", "query": "..."}} to find codes.'
        )

    return text_result(format_entity(entity))


async def handle_search(query: str, max_results: int, client: WHOICFClient) -> CallToolResult:
    results = await client.search(query, max_results=max_results)

    if not results:
        return text_result(f"No ICF codes found for '{query}'. Try different search terms.")

    lines = [f"**ICF Search Results for '{query}':**\n"]

    for i, result in enumerate(results, 1):
        lines.append(f"{i}. **{result.code}**: {result.title}")

    lines.append('\nUse {"action": "lookup", "code": "..."} for full details.')

    return text_result("\n".join(lines))


async def handle_browse(category: str, client: WHOICFClient) -> CallToolResult:
    try:
        result = await client.browse_category(category)
    except ValidationError as e:
        return text_result(str(e), is_error=True)

    lines = [
        f"**ICF Category: {result.name}** (codes starting with '{result.category}')",
        "",
        result.description,
        "",
        "**Sample codes in this category:**",
    ]

    for item in result.results[:BROWSE_SAMPLE_SIZE]:
        lines.append(f"  - **{item.code}**: {item.title}")

    lines.append('\nUse {"action": "search"} or {"action": "lookup"} for more.')

    return text_result("\n".join(lines))


async def handle_children(code: str, client: WHOICFClient) -> CallToolResult:
    children = await client.get_children(code)

    if not children:
        return text_result(f"No child codes found for '{code}'. This may be a leaf-level code.")

    lines = [f"**Child codes under {code}:**\n"]

    for child in children:
        lines.append(f"- **{child.code}**: {child.title}")

    return text_result("\n".join(lines))


def handle_qualifier(qualifier: int) -> CallToolResult:
    descriptor = get_qualifier(qualifier)

    if descriptor is None:
        valid = ", ".join(f"{value} ({label})" for value, label in QUALIFIER_SHORT_LABELS.items())
        return text_result(f"Invalid qualifier '{qualifier}'. Valid values are: {valid}")

    return text_result(
        f"**ICF Qualifier {descriptor.value}: {descriptor.level}**\n\n"
        f"- **Percentage range:** {descriptor.percentage}\n"
        f"- **Description:** {descriptor.description}\n\n"
        f"Example: d450.{descriptor.value} means '{descriptor.level.lower()}' "
        f"difficulty with walking."
    )


def handle_overview() -> CallToolResult:
    return text_result(OVERVIEW_TEXT)


async def handle_api(path: str, client: WHOICFClient) -> CallToolResult:
    if not path.startswith("/"):
        return text_result("Path must start with /", is_error=True)

    try:
        result = await client.raw_request(path)
    except (ICFError, httpx.HTTPError, ValueError) as e:
        return text_result(f"API Error: {e}", is_error=True)

    return text_result(json.dumps(result, indent=2, ensure_ascii=False))


def handle_help() -> CallToolResult:
    return text_result(HELP_TEXT)
