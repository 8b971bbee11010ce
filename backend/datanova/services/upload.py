"""
Upload coordination: validate a CSV, send it for analysis, start a new session.
"""
import logging
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Callable, List, Optional

from datanova.core.errors import EmptyFile, FileTooLarge, InvalidFileType, UploadInProgress
from datanova.core.sanitization import sanitize_filename, sanitize_for_logging
from datanova.core.schemas import DatasetArtifact, SummaryParams
from datanova.services.client import AnalysisClient
from datanova.services.normalize import normalize_artifact
from datanova.services.session import SessionStore

logger = logging.getLogger(__name__)

UPLOAD_CONCERN = "upload"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_upload(
    file_name: Optional[str],
    content: Optional[bytes],
    accepted_extensions: List[str],
    max_size_bytes: int,
) -> str:
    """
    Check a candidate file before anything is sent.

    Returns the sanitized file name; raises InvalidFileType, EmptyFile or
    FileTooLarge otherwise.
    """
    if not file_name or content is None:
        raise InvalidFileType("No file was provided.")

    safe_name = sanitize_filename(file_name)
    extension = PurePath(safe_name).suffix.lower()
    if extension not in accepted_extensions:
        shown = extension or "no extension"
        raise InvalidFileType(f"Got {shown}; accepted: {', '.join(accepted_extensions)}.")

    if len(content) == 0:
        raise EmptyFile()

    if len(content) > max_size_bytes:
        raise FileTooLarge(
            f"Maximum size is {max_size_bytes / 1024 / 1024:.0f}MB. "
            f"Your file is {len(content) / 1024 / 1024:.2f}MB."
        )

    return safe_name


class UploadCoordinator:
    """Runs at most one upload at a time and commits successes to the store."""

    def __init__(
        self,
        store: SessionStore,
        client: AnalysisClient,
        accepted_extensions: Optional[List[str]] = None,
        max_size_bytes: int = 50 * 1024 * 1024,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._client = client
        self._accepted_extensions = accepted_extensions or [".csv"]
        self._max_size_bytes = max_size_bytes
        self._clock = clock
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def upload(
        self,
        file_name: Optional[str],
        content: Optional[bytes],
        params: Optional[SummaryParams] = None,
    ) -> Optional[DatasetArtifact]:
        """
        Analyze a file and make it the current session.

        Raises a WorkflowError on any failure; the store is only touched after
        a successful, still-current response. Returns None when the session
        was cleared while the upload was in flight and the response was dropped.
        """
        safe_name = validate_upload(file_name, content, self._accepted_extensions, self._max_size_bytes)

        if self._in_flight:
            raise UploadInProgress()

        self._in_flight = True
        token = self._store.issue_token(UPLOAD_CONCERN)
        logger.info(f"Uploading {sanitize_for_logging(safe_name)} ({len(content) / 1024:.2f}KB)")
        try:
            payload = await self._client.analyze_file(safe_name, content, params)
            artifact = normalize_artifact(payload, safe_name, self._clock())
        finally:
            self._in_flight = False

        if not self._store.is_current(UPLOAD_CONCERN, token):
            logger.info(f"Discarding stale upload response for {sanitize_for_logging(safe_name)}")
            return None

        self._store.replace(artifact, params)
        logger.info(
            f"Analyzed {sanitize_for_logging(safe_name)}: "
            f"{artifact.row_count} rows, {artifact.column_count} columns"
        )
        return artifact
