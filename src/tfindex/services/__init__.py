"""
Services Layer - Run orchestration and service wiring.
"""

from tfindex.services.container import (
    ServicesContainer,
    create_drive_client,
    create_services,
)
from tfindex.services.index_service import (
    IndexRunResult,
    IndexService,
    ProgressCallback,
)

__all__ = [
    "IndexService",
    "IndexRunResult",
    "ProgressCallback",
    "ServicesContainer",
    "create_services",
    "create_drive_client",
]
