"""
Summary regeneration for the current dataset.
"""
import logging
from typing import Optional

from datanova.core.errors import MalformedResponse, NoActiveSession, RegenerationError, TransportFailure
from datanova.core.schemas import DatasetArtifact, SummaryParams
from datanova.services.client import AnalysisClient
from datanova.services.normalize import normalize_patch, to_service_payload
from datanova.services.session import SessionStore

logger = logging.getLogger(__name__)

REGENERATE_CONCERN = "regenerate"


class SummaryRegenerator:
    """
    Re-requests the summary under new length/tone/audience parameters.

    Asking again for the parameters the cached summary was produced with is
    free. Only the newest request for the current artifact is applied.
    """

    def __init__(self, store: SessionStore, client: AnalysisClient):
        self._store = store
        self._client = client

    async def regenerate(self, params: SummaryParams) -> Optional[DatasetArtifact]:
        """
        Regenerate the summary and merge the result into the session.

        Returns the current artifact; this is the unchanged artifact on a cache
        hit and whatever is current when a late response was dropped.
        """
        artifact = self._store.get()
        if artifact is None:
            raise NoActiveSession("Upload a dataset before generating a summary.")

        if params == self._store.last_applied_params and artifact.summary:
            logger.debug("Summary parameters unchanged; serving cached summary")
            return artifact

        token = self._store.issue_token(REGENERATE_CONCERN)
        revision = self._store.revision
        logger.info(
            f"Regenerating summary (length={params.length.value}, "
            f"tone={params.tone.value}, audience={params.audience.value})"
        )

        try:
            payload = await self._client.regenerate(to_service_payload(artifact), params)
            patch = normalize_patch(payload, artifact)
        except (TransportFailure, MalformedResponse) as e:
            raise RegenerationError(e.detail) from e

        if not self._store.is_current(REGENERATE_CONCERN, token) or self._store.revision != revision:
            logger.info("Discarding stale summary response")
            return self._store.get()

        merged = self._store.merge(patch)
        self._store.set_last_applied_params(params)
        return merged
