"""
The single current dataset session.

SessionStore owns the one active DatasetArtifact and the summary parameters it
was last generated with. It is constructed once per process and handed to the
components that need it; they read copies and only `replace`/`merge` mutate.
"""
import logging
from collections import defaultdict
from typing import Dict, Optional

from pydantic import ValidationError

from datanova.core.errors import NoActiveSession
from datanova.core.sanitization import sanitize_for_logging
from datanova.core.schemas import ArtifactPatch, DatasetArtifact, SummaryParams
from datanova.core.storage import StorageBackend

logger = logging.getLogger(__name__)

PARAMS_KEY_SUFFIX = ":params"


class SessionStore:
    """Holds and persists the current DatasetArtifact."""

    def __init__(self, storage: StorageBackend, key: str = "datanova_cache"):
        self._storage = storage
        self._key = key
        self._params_key = f"{key}{PARAMS_KEY_SUFFIX}"
        self._artifact: Optional[DatasetArtifact] = None
        self._last_applied: Optional[SummaryParams] = None
        self._revision = 0
        self._tokens: Dict[str, int] = defaultdict(int)
        self._restore()

    def _restore(self):
        raw = self._storage.get(self._key)
        if raw is None:
            return

        try:
            self._artifact = DatasetArtifact.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable persisted session: {e.error_count()} error(s)")
            self._storage.delete(self._key)
            self._storage.delete(self._params_key)
            return

        raw_params = self._storage.get(self._params_key)
        if raw_params is not None:
            try:
                self._last_applied = SummaryParams.model_validate_json(raw_params)
            except ValidationError:
                logger.warning("Discarding unreadable persisted summary parameters")
                self._storage.delete(self._params_key)

        logger.info(
            f"Restored session for {sanitize_for_logging(self._artifact.file_name)} "
            f"({self._artifact.row_count} rows, {self._artifact.column_count} columns)"
        )

    def _persist(self):
        if self._artifact is None:
            return
        if not self._storage.set(self._key, self._artifact.model_dump_json()):
            logger.error("Failed to persist session; it will not survive a restart")
        if self._last_applied is None:
            self._storage.delete(self._params_key)
        else:
            self._storage.set(self._params_key, self._last_applied.model_dump_json())

    @property
    def revision(self) -> int:
        """Identity of the current artifact; changes on replace and clear."""
        return self._revision

    @property
    def last_applied_params(self) -> Optional[SummaryParams]:
        return self._last_applied

    def get(self) -> Optional[DatasetArtifact]:
        """Snapshot of the current artifact, or None when there is no session."""
        if self._artifact is None:
            return None
        return self._artifact.model_copy(deep=True)

    def replace(self, artifact: DatasetArtifact, params: Optional[SummaryParams] = None):
        """Unconditionally make `artifact` the current session."""
        self._artifact = artifact.model_copy(deep=True)
        self._last_applied = params
        self._revision += 1
        self._persist()
        logger.info(f"Session replaced with {sanitize_for_logging(artifact.file_name)}")

    def merge(self, patch: ArtifactPatch) -> DatasetArtifact:
        """Overlay the fields present in `patch` onto the current artifact."""
        if self._artifact is None:
            raise NoActiveSession("There is no dataset to update.")
        updates = patch.present_fields()
        self._artifact = self._artifact.model_copy(update=updates, deep=True)
        self._persist()
        logger.info(f"Session merged fields: {', '.join(sorted(updates)) or 'none'}")
        return self.get()

    def set_last_applied_params(self, params: Optional[SummaryParams]):
        self._last_applied = params
        self._persist()

    def clear(self):
        """Drop the current session and its persisted copy."""
        self._artifact = None
        self._last_applied = None
        self._revision += 1
        for concern in list(self._tokens):
            self._tokens[concern] += 1
        self._storage.delete(self._key)
        self._storage.delete(self._params_key)
        logger.info("Session cleared")

    def issue_token(self, concern: str) -> int:
        """New request token for `concern`; earlier tokens become stale."""
        self._tokens[concern] += 1
        return self._tokens[concern]

    def is_current(self, concern: str, token: int) -> bool:
        return self._tokens[concern] == token
