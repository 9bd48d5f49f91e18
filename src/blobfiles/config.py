"""Configuration and the :func:`init` entry point."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from .credentials import (
    DEFAULT_TVM_API_URL,
    DEFAULT_TVM_CACHE_FILE,
    FileCredentialCache,
    TvmClient,
    with_hidden_fields,
)
from .exceptions import BadArgumentError
from .files import Files

logger = logging.getLogger(__name__)

__all__ = [
    "AzureCredentials", "FilesConfig", "OpenWhiskCredentials", "TvmConfig", "init",
]

HIDDEN_FIELDS = [
    "ow.auth",
    "azure.sas_url_private",
    "azure.sas_url_public",
    "azure.storage_access_key",
]

_AZURE_KEYS = {
    "sasURLPrivate": "sas_url_private",
    "sasURLPublic": "sas_url_public",
    "storageAccount": "storage_account",
    "storageAccessKey": "storage_access_key",
    "containerName": "container_name",
    "hostName": "host_name",
}
_TVM_KEYS = {"apiUrl": "api_url", "cacheFile": "cache_file"}


def _snake_keys(mapping: Mapping[str, Any], aliases: dict[str, str],
                section: str) -> dict[str, Any]:
    if not isinstance(mapping, Mapping):
        raise BadArgumentError(f"'{section}' must be an object",
                               details={section: type(mapping).__name__})
    allowed = set(aliases.values())
    out = {}
    for k, v in mapping.items():
        name = aliases.get(k, k)
        if name not in allowed:
            raise BadArgumentError(f"unknown key '{k}' in '{section}'",
                                   details={section: sorted(mapping)})
        out[name] = v
    return out


@dataclass
class AzureCredentials:
    """Own Azure Blob credentials.

    Either both container SAS URLs, or storage account, access key and
    container name.  The public container is ``<container_name>-public``.

    Attributes:
        sas_url_private: SAS URL of the private container.
        sas_url_public: SAS URL of the public container.
        storage_account: Storage account name.
        storage_access_key: Storage account key.
        container_name: Private container name.
        host_name: CDN host that replaces the blob host in file URLs.
    """
    sas_url_private: str | None = None
    sas_url_public: str | None = None
    storage_account: str | None = None
    storage_access_key: str | None = None
    container_name: str | None = None
    host_name: str | None = None

    def __post_init__(self):
        sas = [self.sas_url_private, self.sas_url_public]
        account = [self.storage_account, self.storage_access_key, self.container_name]
        for v in sas + account + [self.host_name]:
            if v is not None and not isinstance(v, str):
                raise BadArgumentError(
                    "azure credentials must be strings",
                    details=with_hidden_fields({"azure": dict(self.__dict__)}, HIDDEN_FIELDS))
        has_sas = any(sas)
        has_account = any(account)
        if has_sas == has_account or (has_sas and not all(sas)) or (has_account and not all(account)):
            raise BadArgumentError(
                "azure credentials need either sas_url_private and sas_url_public, "
                "or storage_account, storage_access_key and container_name",
                details=with_hidden_fields({"azure": dict(self.__dict__)}, HIDDEN_FIELDS))

    @property
    def uses_sas(self) -> bool:
        """True when the credentials are container SAS URLs."""
        return bool(self.sas_url_private)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> AzureCredentials:
        """Build from camelCase (``sasURLPrivate``) or snake_case keys."""
        return cls(**_snake_keys(mapping, _AZURE_KEYS, "azure"))


@dataclass
class OpenWhiskCredentials:
    """OpenWhisk namespace and auth key, exchanged for storage credentials at the TVM."""
    namespace: str
    auth: str

    def __post_init__(self):
        if not isinstance(self.namespace, str) or not self.namespace:
            raise BadArgumentError("ow.namespace is required", details={"ow": {"namespace": self.namespace}})
        if not isinstance(self.auth, str) or not self.auth:
            raise BadArgumentError("ow.auth is required", details={"ow": {"namespace": self.namespace}})

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any] | None = None,
                  env: Mapping[str, str] | None = None) -> OpenWhiskCredentials:
        """Build from *mapping*, filling missing fields from the environment.

        Reads ``__OW_NAMESPACE``/``__OW_AUTH``, then ``OW_NAMESPACE``/``OW_AUTH``.
        """
        env = os.environ if env is None else env
        values = _snake_keys(mapping or {}, {"namespace": "namespace", "auth": "auth"}, "ow")
        for name in ("namespace", "auth"):
            if not values.get(name):
                values[name] = (env.get(f"__OW_{name.upper()}")
                                or env.get(f"OW_{name.upper()}") or "")
        return cls(**values)


@dataclass
class TvmConfig:
    """Token vending machine settings.

    Attributes:
        api_url: TVM base URL.
        cache_file: Credential cache file; ``None`` disables caching.
    """
    api_url: str = DEFAULT_TVM_API_URL
    cache_file: str | None = DEFAULT_TVM_CACHE_FILE

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> TvmConfig:
        return cls(**_snake_keys(mapping, _TVM_KEYS, "tvm"))


@dataclass
class FilesConfig:
    """Configuration of :func:`init`: exactly one of *azure* or *ow*.

    Attributes:
        azure: Own Azure credentials.
        ow: OpenWhisk credentials for the TVM.
        tvm: TVM settings, used with *ow*.
    """
    azure: AzureCredentials | None = None
    ow: OpenWhiskCredentials | None = None
    tvm: TvmConfig = field(default_factory=TvmConfig)

    def __post_init__(self):
        if (self.azure is None) == (self.ow is None):
            raise BadArgumentError(
                "config needs exactly one of 'azure' or 'ow' credentials",
                details=with_hidden_fields(self, HIDDEN_FIELDS))

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any] | None = None,
                  env: Mapping[str, str] | None = None) -> FilesConfig:
        """Build from a JSON-style dict (``{"azure": {...}}`` or ``{"ow": {...}}``).

        Without ``azure`` credentials, OpenWhisk credentials are completed
        from the environment.
        """
        mapping = mapping or {}
        unknown = set(mapping) - {"azure", "ow", "tvm"}
        if unknown:
            raise BadArgumentError(f"unknown config keys: {sorted(unknown)}",
                                   details={"keys": sorted(mapping)})
        tvm = TvmConfig.from_dict(mapping.get("tvm") or {})
        if mapping.get("azure"):
            return cls(azure=AzureCredentials.from_dict(mapping["azure"]), tvm=tvm)
        return cls(ow=OpenWhiskCredentials.from_dict(mapping.get("ow"), env), tvm=tvm)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> FilesConfig:
        """Load a JSON config file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as exc:
            raise BadArgumentError(f"invalid JSON in config file {path}: {exc}",
                                   details={"path": os.fspath(path)}) from exc
        return cls.from_dict(data)


async def init(config: FilesConfig | Mapping[str, Any] | None = None) -> Files:
    """Create a :class:`~blobfiles.Files` instance backed by Azure Blob storage.

    With own ``azure`` credentials the backend talks to Azure directly;
    otherwise OpenWhisk credentials (from *config* or the environment) are
    exchanged for SAS credentials at the TVM.

    Args:
        config: :class:`FilesConfig`, a JSON-style dict, or ``None``.

    Raises:
        BadArgumentError: On invalid or missing configuration.
        BadCredentialsError: If the TVM rejects the OpenWhisk credentials.
    """
    from .backends.azure import AzureBlobBackend

    if not isinstance(config, FilesConfig):
        config = FilesConfig.from_dict(config)
    logger.debug("init with config: %s",
                 json.dumps(with_hidden_fields(config, HIDDEN_FIELDS), default=str))

    if config.azure is not None:
        logger.debug("init with azure blob credentials")
        files = Files(AzureBlobBackend(config.azure))
        await files._provider_request(
            files.backend.prepare_containers(),
            details={"storage_account": config.azure.storage_account,
                     "container_name": config.azure.container_name})
        return files

    logger.debug("init with openwhisk credentials")
    cache = FileCredentialCache(config.tvm.cache_file) if config.tvm.cache_file else None
    tvm = TvmClient(config.ow.namespace, config.ow.auth,
                    api_url=config.tvm.api_url, cache=cache)
    return Files(await AzureBlobBackend.from_tvm(tvm))
