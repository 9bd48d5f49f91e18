"""Credential helpers: secret redaction, credential caching, and the TVM client.

The token vending machine (TVM) exchanges OpenWhisk credentials for
short-lived storage credentials.  Responses are cached per namespace and
endpoint URL until one minute before their ``expiration``.
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

import requests

from .exceptions import BadCredentialsError, InternalError

logger = logging.getLogger(__name__)

__all__ = [
    "CredentialCache", "DEFAULT_TVM_API_URL", "DEFAULT_TVM_CACHE_FILE",
    "FileCredentialCache", "TvmClient", "with_hidden_fields",
]

HIDDEN = "<hidden>"
DEFAULT_TVM_API_URL = "https://firefly-tvm.adobe.io"
DEFAULT_TVM_CACHE_FILE = os.path.join(tempfile.gettempdir(), ".tvmCache")
EXPIRY_MARGIN = timedelta(seconds=60)


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------

def with_hidden_fields(config: Any, fields: list[str]) -> Any:
    """Return a redacted deep copy of *config* for logging.

    *fields* are dotted key paths (``"azure.storage_access_key"``).  SAS
    URL fields (keys starting with ``sasURL`` or ``sas_url``) keep the URL
    and hide the query string; any other present, truthy field becomes
    ``"<hidden>"``.  Dataclasses are converted to dicts first.  *config*
    itself is never modified.

    >>> with_hidden_fields({"ow": {"auth": "s3cret"}}, ["ow.auth"])
    {'ow': {'auth': '<hidden>'}}
    """
    if not config:
        return config
    if dataclasses.is_dataclass(config) and not isinstance(config, type):
        res = dataclasses.asdict(config)
    else:
        res = copy.deepcopy(config)
    for f in fields:
        *parents, last = f.split(".")
        node = res
        for k in parents:
            node = node.get(k) if isinstance(node, Mapping) else None
        if not isinstance(node, dict) or not node.get(last):
            continue
        if last.startswith(("sasURL", "sas_url")):
            node[last] = str(node[last]).split("?")[0] + "?" + HIDDEN
        else:
            node[last] = HIDDEN
    return res


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------

class CredentialCache(Protocol):
    """Storage for credentials returned by the TVM."""

    def get(self, key: str) -> dict | None:
        """Return unexpired credentials for *key*, or ``None``."""

    def put(self, key: str, value: dict, ttl: float | None = None) -> None:
        """Store *value* under *key*, expiring after *ttl* seconds if given."""


def _parse_time(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class FileCredentialCache:
    """JSON file mapping cache keys to credentials.

    An entry whose ``expiration`` timestamp is less than a minute away is a
    miss.  A missing or unreadable file is an empty cache.

    Args:
        path: Cache file (default ``<tmpdir>/.tvmCache``).
    """

    def __init__(self, path: str | os.PathLike[str] = DEFAULT_TVM_CACHE_FILE):
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"FileCredentialCache({self.path!r})"

    def _load(self) -> dict:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> dict | None:
        creds = self._load().get(key)
        if not isinstance(creds, dict):
            return None
        expiration = creds.get("expiration")
        if expiration:
            try:
                expires = _parse_time(expiration)
            except ValueError:
                return None
            if datetime.now(timezone.utc) > expires - EXPIRY_MARGIN:
                return None
        return creds

    def put(self, key: str, value: dict, ttl: float | None = None) -> None:
        entry = dict(value)
        if ttl is not None:
            entry["expiration"] = (datetime.now(timezone.utc)
                                   + timedelta(seconds=ttl)).isoformat()
        data = self._load()
        data[key] = entry
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)


# ---------------------------------------------------------------------------
# TVM client
# ---------------------------------------------------------------------------

def _url_join(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


class TvmClient:
    """Client of the token vending machine.

    Args:
        namespace: OpenWhisk namespace.
        auth: OpenWhisk auth key.
        api_url: TVM base URL.
        cache: Credential cache; ``None`` disables caching.
        session: ``requests`` session to post with.
    """

    AZURE_BLOB_ENDPOINT = "get-azure-blob-token"
    AZURE_PRESIGN_ENDPOINT = "azure/presign"
    AZURE_REVOKE_ENDPOINT = "azure/revoke"

    def __init__(self, namespace: str, auth: str, *,
                 api_url: str = DEFAULT_TVM_API_URL,
                 cache: CredentialCache | None = None,
                 session: requests.Session | None = None):
        self.namespace = namespace
        self.auth = auth
        self.api_url = api_url
        self.cache = cache
        self._session = session or requests.Session()

    def __repr__(self) -> str:
        return f"TvmClient(namespace={self.namespace!r}, api_url={self.api_url!r})"

    def _post(self, url: str, payload: dict) -> dict:
        try:
            resp = self._session.post(url, json=payload, timeout=30)
        except requests.RequestException as exc:
            raise InternalError(
                f"TVM request to {url} failed: {exc}", details={"url": url},
                internal=exc) from exc
        if resp.status_code in (401, 403):
            raise BadCredentialsError(
                f"TVM rejected the OpenWhisk credentials (status {resp.status_code})",
                details={"url": url, "namespace": self.namespace})
        if not resp.ok:
            raise InternalError(
                f"TVM request to {url} failed with status {resp.status_code}",
                details={"url": url, "status": resp.status_code})
        return resp.json() if resp.content else {}

    async def _request(self, endpoint: str, params: dict | None = None) -> dict:
        url = _url_join(self.api_url, endpoint)
        payload = {"owNamespace": self.namespace, "owAuth": self.auth, **(params or {})}
        logger.debug("TVM request %s for namespace '%s'", url, self.namespace)
        return await asyncio.to_thread(self._post, url, payload)

    async def _get_credentials(self, endpoint: str) -> dict:
        url = _url_join(self.api_url, endpoint)
        key = f"{self.namespace}-{url}"
        if self.cache is not None:
            creds = await asyncio.to_thread(self.cache.get, key)
            if creds is not None:
                logger.debug("using cached TVM credentials for '%s'", key)
                return creds
        creds = await self._request(endpoint)
        if self.cache is not None:
            await asyncio.to_thread(self.cache.put, key, creds)
        return creds

    async def get_azure_blob_credentials(self) -> dict:
        """Return ``{sasURLPrivate, sasURLPublic, expiration}`` for the namespace."""
        return await self._get_credentials(self.AZURE_BLOB_ENDPOINT)

    async def get_azure_blob_presign_credentials(self, params: dict) -> dict:
        """Return ``{signature}`` for ``params`` (``blobName``, ``expiryInSeconds``, ``permissions``)."""
        return await self._request(self.AZURE_PRESIGN_ENDPOINT, params)

    async def revoke_presign_urls(self) -> None:
        """Ask the TVM to revoke every presigned URL of the namespace."""
        await self._request(self.AZURE_REVOKE_ENDPOINT)
