"""
Services container module for tfindex.

Wires configuration, the Drive client and the index service together so the
CLI does not construct infrastructure itself.
"""

from dataclasses import dataclass
from typing import Optional

from tfindex.core.config import TfIndexConfig
from tfindex.core.scanner import RemoteStorageClientInterface
from tfindex.infrastructure.drive import (
    GoogleCredentialsProvider,
    GoogleDriveClient,
    BackoffPolicy,
)
from tfindex.services.index_service import IndexService, ProgressCallback


@dataclass
class ServicesContainer:
    """
    Container holding the service instances of one run.

    Attributes:
        config: Validated configuration
        client: Remote storage client
        index_service: Pipeline orchestrator
    """

    config: TfIndexConfig
    client: RemoteStorageClientInterface
    index_service: IndexService

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()


def create_drive_client(config: TfIndexConfig) -> GoogleDriveClient:
    """Create a Google Drive client from the ``drive`` config section."""
    provider = GoogleCredentialsProvider(
        credentials_path=config.drive.credentials_path,
        token_path=config.drive.token_path,
    )
    return GoogleDriveClient(
        credentials=provider,
        timeout=config.drive.timeout,
        page_size=config.drive.page_size,
        backoff=BackoffPolicy(max_retries=config.drive.max_retries),
    )


def create_services(
    config: TfIndexConfig,
    client: Optional[RemoteStorageClientInterface] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ServicesContainer:
    """
    Validate configuration and create all services.

    Args:
        config: Configuration to use
        client: Remote storage client; a Google Drive client is created when None
        progress_callback: Optional progress reporter for the index service

    Returns:
        ServicesContainer with initialized services

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config.validate(require_credentials=client is None)

    if client is None:
        client = create_drive_client(config)

    index_service = IndexService(
        client=client,
        config=config,
        progress_callback=progress_callback,
    )

    return ServicesContainer(config=config, client=client, index_service=index_service)
