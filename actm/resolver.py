"""
Latest-version resolution from upstream providers.

Providers are queried in a fixed order (npm registry, PyPI, Homebrew, GitHub)
and the first one that the tool is published through and that answers with a
decodable response wins. GitHub comes last because anonymous quotas are small.
Successful lookups are cached per tool for 24 hours; misses are never cached.
"""

from __future__ import annotations

import datetime
import http.client
import json
import logging
import os
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable

from .catalog import GithubRepo, ToolDefinition
from .common import vlog
from .config import ProxyConfig
from .errors import ProviderUnavailable
from .models import InstallMethod, VersionRecord, parse_iso, utcnow

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 24 * 60 * 60
REQUEST_TIMEOUT = 10
USER_AGENT = "actm/1.0"

NPM_REGISTRY_URL = "https://registry.npmjs.org"
PYPI_URL = "https://pypi.org/pypi"
BREW_FORMULA_URL = "https://formulae.brew.sh/api/formula"
GITHUB_API_URL = "https://api.github.com"


# --- Cache ---

@dataclass(frozen=True)
class CacheEntry:
    record: VersionRecord
    fetched_at: float


class VersionCache:
    """
    Thread-safe per-tool cache of resolved versions.

    An entry is served only while ``now - fetched_at < ttl``; expired entries
    are dropped on access.
    """

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, tool_name: str) -> VersionRecord | None:
        with self._lock:
            entry = self._entries.get(tool_name)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at < self.ttl:
                return entry.record
            del self._entries[tool_name]
            return None

    def put(self, tool_name: str, record: VersionRecord) -> None:
        with self._lock:
            self._entries[tool_name] = CacheEntry(record=record, fetched_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# --- Provider response schemas ---

def _require_str(data: Any, key: str, source: str) -> str:
    if not isinstance(data, dict):
        raise ProviderUnavailable(f"{source}: expected an object")
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ProviderUnavailable(f"{source}: missing '{key}'")
    return value


def _optional_dict(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class NpmPackument:
    """npm registry document: dist-tags.latest, time[latest], versions[latest].description."""
    latest: str
    published: datetime.datetime | None
    description: str | None

    @classmethod
    def from_json(cls, data: Any) -> NpmPackument:
        if not isinstance(data, dict):
            raise ProviderUnavailable("npm: expected an object")
        latest = _require_str(_optional_dict(data, "dist-tags"), "latest", "npm")
        published = parse_iso(_optional_dict(data, "time").get(latest))
        description = _optional_dict(_optional_dict(data, "versions"), latest).get("description")
        return cls(
            latest=latest,
            published=published,
            description=description if isinstance(description, str) else None,
        )


@dataclass(frozen=True)
class PypiProject:
    """PyPI JSON API: info.version and the upload time of its first file."""
    version: str
    upload_time: datetime.datetime | None

    @classmethod
    def from_json(cls, data: Any) -> PypiProject:
        if not isinstance(data, dict):
            raise ProviderUnavailable("pypi: expected an object")
        version = _require_str(_optional_dict(data, "info"), "version", "pypi")
        files = _optional_dict(data, "releases").get(version) or []
        upload_time = None
        if isinstance(files, list) and files and isinstance(files[0], dict):
            upload_time = parse_iso(files[0].get("upload_time_iso_8601") or files[0].get("upload_time"))
        return cls(version=version, upload_time=upload_time)


@dataclass(frozen=True)
class BrewFormula:
    """Homebrew formula API: versions.stable."""
    stable: str

    @classmethod
    def from_json(cls, data: Any) -> BrewFormula:
        if not isinstance(data, dict):
            raise ProviderUnavailable("brew: expected an object")
        return cls(stable=_require_str(_optional_dict(data, "versions"), "stable", "brew"))


@dataclass(frozen=True)
class GithubRelease:
    """GitHub latest release: tag, publish time, first asset, notes."""
    tag_name: str
    published_at: datetime.datetime | None
    download_url: str | None
    body: str | None

    @classmethod
    def from_json(cls, data: Any) -> GithubRelease:
        tag_name = _require_str(data, "tag_name", "github")
        assets = data.get("assets") or []
        download_url = None
        if isinstance(assets, list) and assets and isinstance(assets[0], dict):
            download_url = assets[0].get("browser_download_url") or None
        body = data.get("body")
        return cls(
            tag_name=tag_name,
            published_at=parse_iso(data.get("published_at") or data.get("created_at")),
            download_url=download_url,
            body=body if isinstance(body, str) and body else None,
        )


@dataclass(frozen=True)
class GithubTag:
    name: str

    @classmethod
    def from_json(cls, data: Any) -> GithubTag:
        if not isinstance(data, list) or not data:
            raise ProviderUnavailable("github: repository has no tags")
        return cls(name=_require_str(data[0], "name", "github"))


def strip_version_prefix(tag: str) -> str:
    """Drop a leading "v" from a release tag."""
    tag = tag.strip()
    if tag[:1] in ("v", "V") and tag[1:2].isdigit():
        return tag[1:]
    return tag


# --- Resolver ---

def build_opener(proxy: ProxyConfig | None = None) -> urllib.request.OpenerDirector:
    """
    Build the HTTP opener used for all provider requests.

    urllib cannot tunnel through SOCKS; a socks5 proxy is reported and
    requests go out directly.
    """
    handlers: list[urllib.request.BaseHandler] = []
    if proxy is not None:
        if proxy.protocol == "socks5":
            logger.warning("SOCKS5 proxy is not supported for version checks, connecting directly")
        else:
            url = proxy.url()
            handlers.append(urllib.request.ProxyHandler({"http": url, "https": url}))
    return urllib.request.build_opener(*handlers)


class VersionResolver:
    """Queries upstream providers for the latest version of catalog tools."""

    def __init__(
        self,
        github_token: str | None = None,
        proxy: ProxyConfig | None = None,
        timeout: float = REQUEST_TIMEOUT,
        cache: VersionCache | None = None,
        opener: urllib.request.OpenerDirector | None = None,
        verbose: bool = False,
    ):
        self.github_token = github_token or os.environ.get("GITHUB_TOKEN") or None
        self.timeout = timeout
        self.cache = cache if cache is not None else VersionCache()
        self.opener = opener if opener is not None else build_opener(proxy)
        self.verbose = verbose

    def get_latest_version(self, definition: ToolDefinition) -> VersionRecord | None:
        """
        Resolve the latest version of a tool.

        Args:
            definition: Catalog definition

        Returns:
            VersionRecord from the first provider that answers, or None
        """
        cached = self.cache.get(definition.name)
        if cached is not None:
            vlog(f"Cache hit for {definition.name}: {cached.version}", self.verbose)
            return cached

        providers: list[tuple[str, Callable[[], VersionRecord]]] = []
        if definition.npm:
            providers.append((InstallMethod.NPM.value, lambda: self.npm_version(definition.npm or "")))
        if definition.pip:
            providers.append((InstallMethod.PIP.value, lambda: self.pypi_version(definition.pip or "")))
        if definition.brew:
            providers.append((InstallMethod.BREW.value, lambda: self.brew_version(definition.brew or "")))
        if definition.github:
            repo = definition.github
            providers.append(("github", lambda: self.github_version(repo)))

        for provider, fetch in providers:
            vlog(f"Trying {provider} for {definition.name}...", self.verbose)
            try:
                record = fetch()
            except ProviderUnavailable as e:
                logger.debug(f"{provider} has no answer for {definition.name}: {e.message}")
                continue

            logger.debug(f"{provider} {definition.name}: {record.version}")
            self.cache.put(definition.name, record)
            return record

        logger.warning(f"No version found for {definition.name}")
        return None

    def clear_cache(self) -> None:
        """Drop every cached version; the next lookups refetch."""
        self.cache.clear()

    def fetch_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """
        GET a JSON document.

        Raises:
            ProviderUnavailable: On timeout, non-2xx status, a broken response
                or invalid JSON
        """
        request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        req = urllib.request.Request(url, headers=request_headers)
        try:
            with self.opener.open(req, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            raise ProviderUnavailable(f"{url} returned {e.code}") from e
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            raise ProviderUnavailable(f"Failed to fetch {url}: {e}") from e

        try:
            return json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ProviderUnavailable(f"Invalid JSON from {url}: {e}") from e

    def npm_version(self, package: str) -> VersionRecord:
        data = NpmPackument.from_json(
            self.fetch_json(f"{NPM_REGISTRY_URL}/{urllib.parse.quote(package, safe='@')}")
        )
        return VersionRecord(
            version=data.latest,
            published_at=data.published or utcnow(),
            changelog=data.description,
        )

    def pypi_version(self, package: str) -> VersionRecord:
        data = PypiProject.from_json(
            self.fetch_json(f"{PYPI_URL}/{urllib.parse.quote(package)}/json")
        )
        return VersionRecord(version=data.version, published_at=data.upload_time or utcnow())

    def brew_version(self, formula: str) -> VersionRecord:
        data = BrewFormula.from_json(
            self.fetch_json(f"{BREW_FORMULA_URL}/{urllib.parse.quote(formula)}.json")
        )
        return VersionRecord(version=data.stable, published_at=utcnow())

    def _github_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.github_token:
            headers["Authorization"] = f"token {self.github_token}"
        return headers

    def github_version(self, repo: GithubRepo) -> VersionRecord:
        """Latest release, or the most recent tag when the repository has no releases."""
        try:
            release = GithubRelease.from_json(
                self.fetch_json(f"{GITHUB_API_URL}/repos/{repo.slug}/releases/latest", self._github_headers())
            )
        except ProviderUnavailable as e:
            logger.debug(f"GitHub {repo.slug}: no release ({e.message}), trying tags")
            tag = GithubTag.from_json(
                self.fetch_json(f"{GITHUB_API_URL}/repos/{repo.slug}/tags?per_page=1", self._github_headers())
            )
            return VersionRecord(version=strip_version_prefix(tag.name), published_at=utcnow())

        return VersionRecord(
            version=strip_version_prefix(release.tag_name),
            published_at=release.published_at or utcnow(),
            download_url=release.download_url,
            changelog=release.body,
        )

    def get_github_rate_limit(self) -> dict[str, int]:
        """
        Get GitHub API rate limit status.

        Returns:
            Dictionary with limit/remaining/used/reset, or empty dict on failure
        """
        try:
            data = self.fetch_json(f"{GITHUB_API_URL}/rate_limit", self._github_headers())
        except ProviderUnavailable as e:
            logger.debug(f"Failed to get GitHub rate limit: {e.message}")
            return {}

        core = _optional_dict(_optional_dict(data if isinstance(data, dict) else {}, "resources"), "core")
        try:
            return {
                "limit": int(core.get("limit", 0) or 0),
                "remaining": int(core.get("remaining", 0) or 0),
                "used": int(core.get("used", 0) or 0),
                "reset": int(core.get("reset", 0) or 0),
            }
        except (TypeError, ValueError) as e:
            logger.debug(f"Malformed GitHub rate limit response: {e}")
            return {}
