"""
Process-wide wiring of the workflow components.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from datanova.core.config import Settings
from datanova.core.storage import StorageBackend, create_storage
from datanova.services.client import AnalysisClient
from datanova.services.session import SessionStore
from datanova.services.summary import SummaryRegenerator
from datanova.services.upload import UploadCoordinator
from datanova.services.visualization import ChartSession

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """Everything that shares the one SessionStore, built once at startup."""
    settings: Settings
    store: SessionStore
    client: AnalysisClient
    uploader: UploadCoordinator
    regenerator: SummaryRegenerator
    chart: ChartSession

    @classmethod
    def create(
        cls,
        settings: Settings,
        storage: Optional[StorageBackend] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Workspace":
        store = SessionStore(storage or create_storage(settings), key=settings.session_key)
        client = AnalysisClient.from_settings(settings, transport=transport)
        workspace = cls(
            settings=settings,
            store=store,
            client=client,
            uploader=UploadCoordinator(
                store,
                client,
                accepted_extensions=settings.accepted_extensions_list,
                max_size_bytes=settings.max_file_size_bytes,
            ),
            regenerator=SummaryRegenerator(store, client),
            chart=ChartSession(
                store,
                default_limit=settings.default_row_limit,
                min_limit=settings.min_row_limit,
                max_limit=settings.max_row_limit,
            ),
        )
        logger.info(f"Workspace ready (service: {settings.api_base_url}, storage: {settings.storage_backend})")
        return workspace
