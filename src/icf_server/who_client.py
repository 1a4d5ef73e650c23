"""
WHO ICD-API Client for ICF (International Classification of Functioning, Disability and Health)

This module handles authentication and API calls to the WHO ICD-API to access ICF data.
API Documentation: https://icd.who.int/docs/icd-api/APIDoc-Version2/
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import ApiError, AuthenticationError, ConfigurationError, ValidationError
from .normalize import (
    coerce_text,
    first_reference,
    optional_text,
    reference_list,
    text_list,
)
from .reference import CATEGORIES, get_category

logger = logging.getLogger(__name__)

# WHO ICD-API endpoints
TOKEN_ENDPOINT = "https://icdaccessmanagement.who.int/connect/token"
TOKEN_SCOPE = "icdapi_access"
API_BASE_URL = "https://id.who.int"
API_VERSION = "v2"

# ICF linearization name in the API
ICF_LINEARIZATION = "icf"

DEFAULT_RELEASE = "2025-01"
DEFAULT_LANGUAGE = "en"
DEFAULT_TIMEOUT = 30.0

# Tokens are refreshed this many seconds before the provider says they expire
TOKEN_EXPIRY_MARGIN = 300
DEFAULT_TOKEN_LIFETIME = 3600

DEFAULT_MAX_RESULTS = 10
BROWSE_MAX_RESULTS = 20


@dataclass(frozen=True)
class AccessToken:
    """Bearer token plus the absolute time (epoch seconds) it stops being used"""
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class ICFEntity:
    """Represents an ICF entity (code, category, or item)"""
    code: str
    title: str
    definition: str | None = None
    inclusions: tuple[str, ...] | None = None
    exclusions: tuple[str, ...] | None = None
    parent: str | None = None
    children: tuple[str, ...] | None = None
    uri: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "title": self.title,
            "definition": self.definition,
            "inclusions": list(self.inclusions) if self.inclusions is not None else None,
            "exclusions": list(self.exclusions) if self.exclusions is not None else None,
            "parent": self.parent,
            "children": list(self.children) if self.children is not None else None,
            "uri": self.uri,
        }


@dataclass(frozen=True)
class ICFSearchResult:
    """Represents a search result from the ICF API"""
    code: str
    title: str
    score: float
    uri: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "title": self.title,
            "score": self.score,
            "uri": self.uri,
        }


@dataclass(frozen=True)
class CategoryBrowse:
    """A top-level category with a sample of matching codes"""
    category: str
    name: str
    description: str
    results: list[ICFSearchResult]


class WHOICFClient:
    """
    Client for the WHO ICD-API to access ICF data.

    Requires registration at https://icd.who.int/icdapi to obtain
    client_id and client_secret credentials. Each instance owns its own
    access token; independently configured clients can coexist.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        release: str = DEFAULT_RELEASE,
        language: str = DEFAULT_LANGUAGE,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the WHO ICF API client.

        Args:
            client_id: WHO ICD-API client ID (from https://icd.who.int/icdapi)
            client_secret: WHO ICD-API client secret
            release: API release version (e.g., "2025-01")
            language: Language code (e.g., "en", "es", "fr")
            timeout: HTTP timeout in seconds
            http_client: Optional pre-built httpx client (tests inject a mock transport)
            clock: Source of wall-clock time in epoch seconds
        """
        if not client_id or not client_secret:
            raise ConfigurationError(
                "WHO ICD-API credentials required. "
                "Register at https://icd.who.int/icdapi to obtain credentials."
            )
        self._client_id = client_id
        self._client_secret = client_secret
        self.release = release
        self.language = language
        self.timeout = timeout
        self._clock = clock
        self._token: AccessToken | None = None
        self._http_client = http_client

    def __repr__(self) -> str:
        return f"WHOICFClient(release={self.release!r}, language={self.language!r})"

    async def __aenter__(self) -> "WHOICFClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def linearization_path(self) -> str:
        return f"/icd/release/11/{self.release}/{ICF_LINEARIZATION}"

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def _ensure_token(self) -> str:
        """Ensure we have a valid access token"""
        if self._token is None or not self._token.is_valid(self._clock()):
            await self._authenticate()
        return self._token.value  # type: ignore[union-attr]

    async def _authenticate(self) -> None:
        """Authenticate with the WHO ICD-API using OAuth2 client credentials"""
        client = await self._get_http_client()

        try:
            response = await client.post(
                TOKEN_ENDPOINT,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": TOKEN_SCOPE,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(None, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise AuthenticationError(response.status_code, response.text)

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = float(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        except (ValueError, KeyError, TypeError, AttributeError):
            raise AuthenticationError(response.status_code, response.text) from None

        self._token = AccessToken(
            value=access_token,
            expires_at=self._clock() + expires_in - TOKEN_EXPIRY_MARGIN,
        )
        logger.info("Successfully authenticated with WHO ICD-API")

    def _get_headers(self, token: str) -> dict[str, str]:
        """Get headers for API requests"""
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Accept-Language": self.language,
            "API-Version": API_VERSION,
        }

    async def _send(self, url: str, params: dict | None) -> httpx.Response:
        token = await self._ensure_token()
        client = await self._get_http_client()
        return await client.get(url, headers=self._get_headers(token), params=params)

    async def _api_request(self, endpoint: str, params: dict | None = None) -> Any:
        """Make an authenticated API request"""
        url = f"{API_BASE_URL}{endpoint}"

        response = await self._send(url, params)

        if response.status_code == 401:
            # Token rejected, re-authenticate and retry once
            logger.info("Access token rejected, re-authenticating")
            self._token = None
            response = await self._send(url, params)

        if not response.is_success:
            raise ApiError(response.status_code, response.text)

        return response.json()

    async def raw_request(self, path: str, params: dict | None = None) -> Any:
        """
        Issue an authenticated GET against the API resource tree and return
        the decoded JSON as-is.

        Args:
            path: Resource path starting with "/" (e.g., "/icd/release/11/2025-01/icf")
            params: Optional query parameters
        """
        return await self._api_request(path, params)

    async def get_icf_root(self) -> dict[str, Any]:
        """Get the root of the ICF classification"""
        return await self._api_request(self.linearization_path)

    async def get_entity_by_code(self, code: str) -> ICFEntity | None:
        """
        Get an ICF entity by its code.

        Args:
            code: ICF code (e.g., "b280" for sensation of pain)

        Returns:
            ICFEntity or None if not found
        """
        # First use codeinfo to get the stemId for this code
        codeinfo_endpoint = f"{self.linearization_path}/codeinfo/{code}"

        try:
            codeinfo = await self._api_request(codeinfo_endpoint)
        except (ApiError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get ICF entity {code}: {e}")
            return None

        stem_id = codeinfo.get("stemId") if isinstance(codeinfo, dict) else None
        if not stem_id:
            logger.warning(f"No stemId found for ICF code {code}")
            return None

        # Fetch the full entity using the stemId
        return await self.get_entity_by_uri(stem_id)

    async def get_entity_by_uri(self, uri: str) -> ICFEntity | None:
        """
        Get an ICF entity by its URI.

        Args:
            uri: Full URI of the entity

        Returns:
            ICFEntity or None if not found
        """
        try:
            data = await self._api_request(self._uri_to_endpoint(uri))
        except (ApiError, AuthenticationError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get ICF entity by URI {uri}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Unexpected payload for ICF entity {uri}")
            return None
        return self._parse_entity(data)

    @staticmethod
    def _uri_to_endpoint(uri: str) -> str:
        """Convert an entity URI (http or https) into an API path"""
        if uri.startswith("http://"):
            uri = "https://" + uri[len("http://"):]
        if uri.startswith(API_BASE_URL):
            return uri[len(API_BASE_URL):]
        return uri

    async def search(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        flat_results: bool = True,
    ) -> list[ICFSearchResult]:
        """
        Search the ICF classification.

        Args:
            query: Search query text
            max_results: Maximum number of results to return
            flat_results: If True, return flat list; if False, include hierarchy

        Returns:
            List of search results
        """
        endpoint = f"{self.linearization_path}/search"
        params = {
            "q": query,
            "useFlexisearch": "true",
            "flatResults": str(flat_results).lower(),
            "highlightingEnabled": "false",
        }

        data = await self._api_request(endpoint, params)

        entities = data.get("destinationEntities") if isinstance(data, dict) else None
        results = []
        for item in (entities or [])[:max_results]:
            if not isinstance(item, dict):
                item = {}
            results.append(ICFSearchResult(
                code=coerce_text(item.get("theCode")),
                title=coerce_text(item.get("title")),
                score=_as_float(item.get("score")),
                uri=coerce_text(item.get("id")),
            ))

        return results

    async def get_children(self, code: str) -> list[ICFEntity]:
        """
        Get child entities of an ICF code.

        Children are fetched one at a time in the order the parent lists
        them; any child that cannot be fetched is left out.

        Args:
            code: Parent ICF code

        Returns:
            List of child entities
        """
        entity = await self.get_entity_by_code(code)
        if not entity or not entity.children:
            return []

        children = []
        for child_uri in entity.children:
            child = await self.get_entity_by_uri(child_uri)
            if child:
                children.append(child)

        return children

    async def browse_category(self, category: str) -> CategoryBrowse:
        """
        Browse a top-level ICF category.

        Categories:
        - "b": Body Functions
        - "s": Body Structures
        - "d": Activities and Participation
        - "e": Environmental Factors

        Args:
            category: Single letter category code

        Returns:
            CategoryBrowse with the static description and matching codes
        """
        descriptor = get_category(category)
        if descriptor is None:
            raise ValidationError(
                f"Invalid category '{category}'. "
                f"Must be one of: {', '.join(CATEGORIES)}"
            )

        # Search for top-level items in this category
        results = await self.search(descriptor.name, max_results=BROWSE_MAX_RESULTS)

        return CategoryBrowse(
            category=descriptor.letter,
            name=descriptor.name,
            description=descriptor.description,
            results=results,
        )

    def _parse_entity(self, data: dict[str, Any]) -> ICFEntity:
        """Parse API response into an ICFEntity"""
        return ICFEntity(
            code=coerce_text(data.get("code") or data.get("theCode")),
            title=coerce_text(data.get("title")),
            definition=optional_text(data.get("definition")),
            inclusions=text_list(data.get("inclusion")),
            exclusions=text_list(data.get("exclusion")),
            parent=first_reference(data.get("parent")),
            children=reference_list(data.get("child")),
            uri=optional_text(data.get("@id") or data.get("id")),
        )

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


def _as_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
