"""Azure Blob storage backend.

Files live in two containers: private paths in ``<container>`` and paths
under the public prefix in ``<container>-public`` (anonymous blob read
access).  Blob names are the full remote paths, so public blobs keep their
``public/`` prefix.  Calls to the synchronous ``azure-storage-blob``
clients run in worker threads.
"""

from __future__ import annotations

import asyncio
import base64
import itertools
import logging
import mimetypes
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, AsyncIterator

import azure.core.exceptions as ace
from azure.storage.blob import (
    AccessPolicy,
    BlobBlock,
    BlobSasPermissions,
    ContainerClient,
    ContentSettings,
    PublicAccess,
    generate_blob_sas,
)

from ..backend import MAX_LIST_RESULTS, Backend, FileDescriptor, WriteSink
from ..credentials import _parse_time, with_hidden_fields
from ..exceptions import UnsupportedOperationError
from ..paths import PUBLIC_PREFIX, is_directory, is_public, is_root

if TYPE_CHECKING:
    from azure.storage.blob import BlobClient, BlobProperties

    from ..config import AzureCredentials
    from ..credentials import TvmClient

logger = logging.getLogger(__name__)

__all__ = ["AzureBlobBackend"]

AZURE_STORAGE_DOMAIN = "blob.core.windows.net"
DEFAULT_CDN_STORAGE_HOST = "firefly.azureedge.net"
STREAM_BLOCK_SIZE = 4 * 1024 * 1024

_HIDDEN = ["storage_access_key", "sas_url_private", "sas_url_public"]


def _lookup_mime_type(path: str) -> str:
    return mimetypes.guess_type(path)[0] or "application/octet-stream"


def _credentials_from_tvm(creds: dict) -> AzureCredentials:
    from ..config import AzureCredentials

    return AzureCredentials(sas_url_private=creds.get("sasURLPrivate"),
                            sas_url_public=creds.get("sasURLPublic"))


class _AzureWriteSink(WriteSink):
    """Stages blocks of :data:`STREAM_BLOCK_SIZE` and commits them on close."""

    def __init__(self, blob: BlobClient, path: str):
        self._blob = blob
        self._path = path
        self._buffer = bytearray()
        self._blocks: list[BlobBlock] = []
        self._written = 0
        self._closed = False

    async def _stage(self, data: bytes) -> None:
        block_id = base64.b64encode(f"{len(self._blocks):08d}".encode()).decode()
        await asyncio.to_thread(self._blob.stage_block, block_id, data)
        self._blocks.append(BlobBlock(block_id=block_id))

    async def write(self, chunk: bytes) -> None:
        self._buffer += chunk
        self._written += len(chunk)
        while len(self._buffer) >= STREAM_BLOCK_SIZE:
            data = bytes(self._buffer[:STREAM_BLOCK_SIZE])
            del self._buffer[:STREAM_BLOCK_SIZE]
            await self._stage(data)

    async def close(self) -> int:
        if self._closed:
            return self._written
        self._closed = True
        if self._buffer:
            await self._stage(bytes(self._buffer))
            self._buffer.clear()
        await asyncio.to_thread(
            self._blob.commit_block_list, self._blocks,
            content_settings=ContentSettings(content_type=_lookup_mime_type(self._path)))
        return self._written


class AzureBlobBackend(Backend):
    """Backend over a private and a public Azure Blob container.

    With own account credentials, call :meth:`prepare_containers` once
    before use.  With TVM credentials use :meth:`from_tvm`.

    Args:
        credentials: Container SAS URLs or storage account credentials.
        tvm: TVM client the credentials came from, if any.
        expiration: When TVM credentials expire.
        public_prefix: First path segment of public files.
    """

    def __init__(self, credentials: AzureCredentials, *, tvm: TvmClient | None = None,
                 expiration: datetime | None = None,
                 public_prefix: str = PUBLIC_PREFIX):
        self.public_prefix = public_prefix
        self.max_list_results = MAX_LIST_RESULTS
        self.tvm = tvm
        self.expiration = expiration
        self._refresh_lock: asyncio.Lock | None = None
        self._connect(credentials)

    def __repr__(self) -> str:
        return f"AzureBlobBackend({self._private.url.split('?')[0]!r})"

    def _connect(self, credentials: AzureCredentials) -> None:
        logger.debug("connecting to azure blob with %s",
                     with_hidden_fields(credentials, _HIDDEN))
        self.credentials = credentials
        if credentials.uses_sas:
            self._private = ContainerClient.from_container_url(credentials.sas_url_private)
            self._public = ContainerClient.from_container_url(credentials.sas_url_public)
        else:
            account_url = f"https://{credentials.storage_account}.{AZURE_STORAGE_DOMAIN}"
            key = {"account_name": credentials.storage_account,
                   "account_key": credentials.storage_access_key}
            self._private = ContainerClient(account_url, credentials.container_name,
                                            credential=key)
            self._public = ContainerClient(account_url, credentials.container_name + "-public",
                                           credential=key)

    @property
    def has_own_credentials(self) -> bool:
        return self.tvm is None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    async def prepare_containers(self) -> None:
        """Create both containers if missing and add a default access policy.

        Only possible with account credentials; container SAS credentials
        must point to existing containers.
        """
        if self.credentials.uses_sas:
            logger.debug("using azure SAS credentials")
            return
        logger.debug("using azure storage account credentials")
        await self._create_container(self._private, public=False)
        await self._create_container(self._public, public=True)
        await self._add_access_policy_if_not_exists()

    @classmethod
    async def from_tvm(cls, tvm: TvmClient, **kwargs) -> AzureBlobBackend:
        """Connect with SAS credentials vended by *tvm*."""
        creds = await tvm.get_azure_blob_credentials()
        return cls(_credentials_from_tvm(creds), tvm=tvm,
                   expiration=_parse_expiration(creds), **kwargs)

    async def _create_container(self, container: ContainerClient, *, public: bool) -> None:
        kind = "public" if public else "private"
        try:
            logger.debug("creating %s azure blob container", kind)
            await asyncio.to_thread(
                container.create_container,
                public_access=PublicAccess.BLOB if public else None)
        except ace.ResourceExistsError:
            logger.debug("%s azure blob container already exists", kind)

    async def _get_access_policy_id(self) -> str | None:
        acl = await asyncio.to_thread(self._private.get_container_access_policy)
        identifiers = acl.get("signed_identifiers") or []
        return identifiers[0].id if identifiers else None

    async def _set_access_policy(self) -> None:
        # New identifier without permissions; SAS tokens bound to the old one die.
        identifier = str(uuid.uuid4())
        await asyncio.to_thread(
            self._private.set_container_access_policy,
            signed_identifiers={identifier: AccessPolicy(permission="")})
        logger.debug("set access policy %s", identifier)

    async def _add_access_policy_if_not_exists(self) -> None:
        identifier = await self._get_access_policy_id()
        logger.debug("found access policy with identifier %s", identifier)
        if not identifier:
            logger.debug("adding default access policy")
            await self._set_access_policy()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _container_for(self, path: str) -> ContainerClient:
        if is_public(path or "/", self.public_prefix):
            return self._public
        return self._private

    def _blob(self, path: str) -> BlobClient:
        return self._container_for(path).get_blob_client(path or "/")

    def _descriptor(self, name: str, props: BlobProperties) -> FileDescriptor:
        settings = props.content_settings
        return FileDescriptor(
            name=name,
            is_directory=is_directory(name, self.public_prefix),
            is_public=is_public(name, self.public_prefix),
            url=self.url_for(name),
            content_length=props.size,
            content_type=settings.content_type if settings else None,
            etag=props.etag,
            last_modified=props.last_modified,
            creation_time=props.creation_time,
        )

    def _list_container(self, container: ContainerClient, prefix: str | None) -> list:
        blobs = container.list_blobs(name_starts_with=prefix or None)
        return list(itertools.islice(blobs, self.max_list_results))

    # ------------------------------------------------------------------
    # Backend contract
    # ------------------------------------------------------------------

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._blob(path).exists)

    async def get_file_info(self, path: str) -> FileDescriptor:
        props = await asyncio.to_thread(self._blob(path).get_blob_properties)
        return self._descriptor(path, props)

    async def list_folder(self, path: str) -> list[FileDescriptor]:
        if is_root(path):
            private, public = await asyncio.gather(
                asyncio.to_thread(self._list_container, self._private, None),
                asyncio.to_thread(self._list_container, self._public, None),
            )
            blobs = private + public
        else:
            prefix = path if path.endswith("/") else path + "/"
            blobs = await asyncio.to_thread(
                self._list_container, self._container_for(path), prefix)
        return [self._descriptor(b.name, b) for b in blobs]

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._blob(path).delete_blob)

    async def open_read(self, path: str, position: int | None = None,
                        length: int | None = None) -> AsyncIterator[bytes]:
        if position is None and length is not None:
            position = 0
        downloader = await asyncio.to_thread(
            self._blob(path).download_blob, offset=position, length=length)
        chunks = downloader.chunks()
        while True:
            chunk = await asyncio.to_thread(next, chunks, None)
            if chunk is None:
                break
            yield chunk

    async def open_write(self, path: str) -> WriteSink:
        return _AzureWriteSink(self._blob(path), path)

    async def write_stream(self, path: str, chunks: AsyncIterator[bytes]) -> int:
        sink = await self.open_write(path)
        async for chunk in chunks:
            await sink.write(chunk)
        return await sink.close()

    async def write_buffer(self, path: str, data: bytes) -> int:
        await asyncio.to_thread(
            self._blob(path).upload_blob, data, overwrite=True,
            content_settings=ContentSettings(content_type=_lookup_mime_type(path)))
        return len(data)

    async def copy_remote_to_remote_file(self, src: str, dest: str) -> None:
        await asyncio.to_thread(self._blob(dest).start_copy_from_url, self._blob(src).url)

    def url_for(self, path: str) -> str:
        azure_url = self._blob(path).url.split("?")[0]
        if self.has_own_credentials:
            if not self.credentials.host_name:
                return azure_url
            host = self.credentials.host_name
        else:
            host = DEFAULT_CDN_STORAGE_HOST
        index = azure_url.find(AZURE_STORAGE_DOMAIN)
        return "https://" + host + azure_url[index + len(AZURE_STORAGE_DOMAIN):]

    async def presign_url(self, path: str, expiry_in_seconds: int,
                          permissions: str) -> str:
        if not self.has_own_credentials:
            cred = await self.tvm.get_azure_blob_presign_credentials({
                "blobName": path,
                "expiryInSeconds": expiry_in_seconds,
                "permissions": permissions,
            })
            return self.url_for(path) + "?" + cred["signature"]
        if self.credentials.uses_sas:
            raise UnsupportedOperationError(
                "generate_presign_url is not supported with Azure container SAS "
                "credentials, use storage account credentials instead",
                details={"path": path})
        container = self._container_for(path)
        policy_id = None if container is self._public else await self._get_access_policy_id()
        sas = generate_blob_sas(
            account_name=self.credentials.storage_account,
            container_name=container.container_name,
            blob_name=path,
            account_key=self.credentials.storage_access_key,
            permission=BlobSasPermissions.from_string(permissions),
            expiry=datetime.now(timezone.utc) + timedelta(seconds=expiry_in_seconds),
            policy_id=policy_id,
        )
        return self.url_for(path) + "?" + sas

    async def revoke_presign_urls(self) -> None:
        if not self.has_own_credentials:
            await self.tvm.revoke_presign_urls()
            return
        if self.credentials.uses_sas:
            raise UnsupportedOperationError(
                "revoke_all_presign_urls is not supported with Azure container SAS "
                "credentials, use storage account credentials instead")
        await self._set_access_policy()

    def status_from_error(self, exc: BaseException) -> int | None:
        return getattr(exc, "status_code", None)

    async def refresh_if_expired(self) -> None:
        if self.tvm is None or self.expiration is None:
            return
        if datetime.now(timezone.utc) < self.expiration:
            return
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        async with self._refresh_lock:
            # A concurrent caller may have refreshed while we waited.
            if self.expiration is None or datetime.now(timezone.utc) < self.expiration:
                return
            logger.debug("azure credentials expired at %s, refreshing", self.expiration)
            creds = await self.tvm.get_azure_blob_credentials()
            await self.close()
            self._connect(_credentials_from_tvm(creds))
            self.expiration = _parse_expiration(creds)

    async def close(self) -> None:
        await asyncio.to_thread(self._private.close)
        await asyncio.to_thread(self._public.close)


def _parse_expiration(creds: dict) -> datetime | None:
    value = creds.get("expiration")
    return _parse_time(str(value)) if value else None
