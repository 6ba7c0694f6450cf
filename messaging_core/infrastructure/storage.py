"""Azure Blob Storage backed attachment store."""

from __future__ import annotations

import logging
from typing import Optional, Protocol
from urllib.parse import unquote, urlparse

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from messaging_core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class AttachmentStore(Protocol):
    def upload(self, blob_path: str, data: bytes, *, content_type: Optional[str] = None) -> str:
        ...

    def delete(self, url: str) -> None:
        ...


class AzureBlobAttachmentStore:
    """Upload attachments to a blob container and return their public URL."""

    def __init__(self, connection_string: str | None, container_name: str | None) -> None:
        self._connection_string = connection_string
        self._container_name = container_name
        self._container_client: ContainerClient | None = None

    @property
    def container_name(self) -> str:
        if not self._container_name:
            msg = "Azure storage container name is not configured"
            raise RuntimeError(msg)
        return self._container_name

    def _get_container_client(self) -> ContainerClient:
        if self._container_client is not None:
            return self._container_client
        if not self._connection_string:
            msg = "Azure storage connection string is not configured"
            raise RuntimeError(msg)
        service_client = BlobServiceClient.from_connection_string(self._connection_string)
        try:
            service_client.create_container(self.container_name)
        except ResourceExistsError:
            pass
        self._container_client = service_client.get_container_client(self.container_name)
        return self._container_client

    def upload(
        self,
        blob_path: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
    ) -> str:
        """Upload ``data`` to ``blob_path`` and return the blob URL."""

        container_client = self._get_container_client()
        blob_client = container_client.get_blob_client(blob_path)
        content_settings = None
        if content_type is not None:
            content_settings = ContentSettings(content_type=content_type)
        blob_client.upload_blob(
            data,
            overwrite=True,
            content_settings=content_settings,
        )
        logger.info("Uploaded attachment %s (%d bytes)", blob_path, len(data))
        return blob_client.url

    def delete(self, url: str) -> None:
        """Delete the blob behind ``url`` if it exists."""

        blob_path = self.blob_path_from_url(url)
        container_client = self._get_container_client()
        blob_client = container_client.get_blob_client(blob_path)
        try:
            blob_client.delete_blob()
        except ResourceNotFoundError:
            return

    def blob_path_from_url(self, url: str) -> str:
        path = unquote(urlparse(url).path)
        marker = f"/{self.container_name}/"
        _, found, blob_path = path.partition(marker)
        if not found or not blob_path:
            raise ValueError(f"URL does not point into container {self.container_name}")
        return blob_path


def build_attachment_store(settings: Settings | None = None) -> AzureBlobAttachmentStore:
    settings = settings or get_settings()
    return AzureBlobAttachmentStore(
        settings.azure_storage_connection_string,
        settings.azure_storage_container_name,
    )


__all__ = ["AttachmentStore", "AzureBlobAttachmentStore", "build_attachment_store"]
