"""GitHub REST API client with response caching and rate-limit awareness."""

import json
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from kobgitupdater import __version__
from kobgitupdater.exceptions import ApiError
from kobgitupdater.logger import get_logger, mask_token
from kobgitupdater.models.config import AppConfig

from .cache import ResponseCache

logger = get_logger(__name__)

USER_AGENT = f"Kob-Git-Updater/{__version__}"
GITHUB_ACCEPT = "application/vnd.github+json"

# Warn when fewer requests than this remain in the current rate-limit window
RATE_LIMIT_WARNING_THRESHOLD = 100

API_ENDPOINTS = {
    "releases": "/repos/{owner}/{repo}/releases/latest",
    "repository": "/repos/{owner}/{repo}",
    "download": "/repos/{owner}/{repo}/zipball/{ref}",
    "rate_limit": "/rate_limit",
}


def build_headers(token: str | None, accept: str = GITHUB_ACCEPT) -> dict[str, str]:
    """
    Build the request headers shared by API calls and archive downloads.

    Args:
        token: Personal access token, or None for anonymous access
        accept: Accept header value

    Returns:
        Header dictionary
    """
    headers = {"Accept": accept, "User-Agent": USER_AGENT}
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


def parse_error_response(body: str, status_code: int) -> str:
    """
    Turn a GitHub error body into a readable message.

    Args:
        body: Raw response body
        status_code: HTTP status code

    Returns:
        Message with context for the common failure statuses
    """
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if isinstance(data, dict) and data.get("message"):
        message = str(data["message"])
        if status_code == 404:
            message += " (Repository not found or private)"
        elif status_code == 401:
            message += " (Invalid or missing authentication token)"
        elif status_code == 403:
            if "rate limit" in message.lower():
                message += " (API rate limit exceeded)"
            else:
                message += " (Access forbidden)"
        return message

    return f"GitHub API error (HTTP {status_code})"


class GitHubApiClient:
    """Issues authenticated GET requests against the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = "https://api.github.com",
        timeout: float = 15.0,
        cache: ResponseCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: Personal access token
            base_url: API root, without trailing slash
            timeout: Timeout for each API request in seconds
            cache: Response cache; a fresh one-hour cache is created if omitted
            transport: Optional httpx transport (used to fake GitHub in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else ResponseCache()
        self._token = token or None
        self._http = httpx.Client(timeout=timeout, follow_redirects=True, transport=transport)

    @classmethod
    def from_config(cls, config: AppConfig, transport: httpx.BaseTransport | None = None) -> "GitHubApiClient":
        """Create a client from the ``github`` configuration section."""
        return cls(
            token=config.github.token,
            base_url=config.github.api_base_url,
            timeout=config.github.api_timeout,
            cache=ResponseCache(ttl=config.github.cache_ttl),
            transport=transport,
        )

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str | None) -> None:
        """
        Set the GitHub authentication token.

        A different token may see a different set of repositories, so the
        whole response cache is dropped whenever the token actually changes.

        Args:
            token: New token, or None/empty to go anonymous
        """
        token = (token or "").strip() or None
        old_token = self._token
        self._token = token

        if token:
            logger.info(f"GitHub token updated: {mask_token(token)}")
        else:
            logger.info("GitHub token cleared")

        if old_token != token:
            removed = self.cache.clear()
            logger.info(f"API cache cleared due to token change ({removed} entries)")

    def build_api_url(self, endpoint: str, **params: str) -> str:
        """
        Build an API URL from an endpoint template.

        Args:
            endpoint: Key of ``API_ENDPOINTS``
            **params: Template values; each is quoted as a single path segment

        Returns:
            Absolute URL

        Raises:
            ValueError: If the endpoint is unknown
        """
        if endpoint not in API_ENDPOINTS:
            raise ValueError(f"Unknown API endpoint: {endpoint}")
        path = API_ENDPOINTS[endpoint].format(**{k: quote(v, safe="") for k, v in params.items()})
        return f"{self.base_url}{path}"

    def get(self, url: str) -> Any:  # noqa: ANN401
        """
        GET a JSON resource, served from the cache when possible.

        Args:
            url: Absolute API URL

        Returns:
            Decoded JSON body

        Raises:
            ApiError: On transport failure, non-2xx status or invalid JSON
        """
        cached = self.cache.get(url, self._token)
        if cached is not None:
            logger.debug(f"Using cached response for: {url}")
            return cached

        data = self.request(url)
        self.cache.set(url, self._token, data)
        logger.debug(f"Cached API response for: {url}")
        return data

    def request(self, url: str) -> Any:  # noqa: ANN401
        """GET a JSON resource, always hitting the network. Nothing is cached here."""
        if self._token:
            logger.debug(f"Making authenticated GitHub API request to {url} with token {mask_token(self._token)}")
        else:
            logger.debug(f"Making unauthenticated GitHub API request to {url}")

        try:
            response = self._http.get(url, headers=build_headers(self._token))
        except httpx.HTTPError as e:
            logger.error(f"GitHub API request failed: {url} - {e}")
            raise ApiError(None, f"Request to GitHub failed: {e}", url=url) from e

        logger.debug(f"GitHub API response: HTTP {response.status_code} for {url}")

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.warning(f"GitHub API error body: {body[:200]}")
            raise ApiError(response.status_code, parse_error_response(body, response.status_code), url=url)

        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(response.status_code, "Failed to decode JSON response", url=url) from e

        self._log_rate_limit_headers(response)
        return data

    def _log_rate_limit_headers(self, response: httpx.Response) -> None:
        limit = response.headers.get("x-ratelimit-limit")
        remaining = response.headers.get("x-ratelimit-remaining")
        reset = response.headers.get("x-ratelimit-reset")

        if not (limit and remaining):
            return

        reset_time = "unknown"
        if reset and reset.isdigit():
            reset_time = datetime.fromtimestamp(int(reset)).strftime("%H:%M:%S")
        logger.debug(f"Rate limit: {remaining}/{limit} remaining, resets at {reset_time}")

        if remaining.isdigit() and int(remaining) < RATE_LIMIT_WARNING_THRESHOLD:
            logger.warning(f"GitHub API rate limit is low: {remaining}/{limit} remaining")

    def get_latest_release(self, owner: str, repo: str) -> dict[str, Any]:
        """Get the latest published release. Raises ApiError (404 when there is none)."""
        return self.get(self.build_api_url("releases", owner=owner, repo=repo))

    def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """Get repository metadata (``default_branch``, ``private``, ...)."""
        return self.get(self.build_api_url("repository", owner=owner, repo=repo))

    def get_download_url(self, owner: str, repo: str, ref: str = "main") -> str:
        """Zipball URL for a tag, branch or commit."""
        return self.build_api_url("download", owner=owner, repo=repo, ref=ref)

    def get_rate_limit_info(self) -> dict[str, Any]:
        """Current rate-limit status. Never cached."""
        return self.request(self.build_api_url("rate_limit"))

    def test_connection(self) -> bool:
        """
        Test API connectivity and authentication.

        Returns:
            True if the rate-limit endpoint answered
        """
        try:
            info = self.get_rate_limit_info()
        except ApiError as e:
            logger.error(f"Failed to get rate limit info: {e}")
            return False

        core = info.get("resources", {}).get("core", {}) if isinstance(info, dict) else {}
        logger.info(f"GitHub API rate limit: {core.get('remaining', 0)}/{core.get('limit', 0)} remaining")
        return True

    def clear_cache(self, owner: str | None = None, repo: str | None = None) -> None:
        """
        Clear cached API responses.

        Args:
            owner: Repository owner; with ``repo``, only that repository's entries are cleared
            repo: Repository name
        """
        if owner and repo:
            self.cache.clear_under(self.build_api_url("repository", owner=owner, repo=repo))
            logger.info(f"Cleared API cache for {owner}/{repo}")
        else:
            self.cache.clear()
            logger.info("Cleared all GitHub API cache")

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GitHubApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
