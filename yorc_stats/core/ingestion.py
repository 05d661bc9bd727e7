"""
Ingestion of generator configuration documents.

A document is decoded, stamped with the ingestion time, attributed to
the current user's owner and stored together with its selected
languages. Parse failures are returned to the caller instead of raised;
storage failures propagate unchanged.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from .decoder import decode_yorc
from .errors import ParseError
from .logging_config import get_logger
from .owner_identity import OwnerIdentityService
from yorc_stats.storage.repository import YoRCRepository

_LOGGER = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def anonymous() -> Optional[str]:
    """Current-user context for callers without a session."""
    return None


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of ingesting one document.

    Exactly one of `record_id` and `error` is set.
    """
    record_id: Optional[int] = None
    error: Optional[ParseError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> int:
        """Return the new record id, raising the parse error on failure."""
        if self.error is not None:
            raise self.error
        return self.record_id


class IngestionPipeline:
    """Turns raw documents into stored snapshots.

    Args:
        repository: Storage for snapshots and owners
        identity_service: Resolves logins to owners; defaults to one
            backed by `repository`
        current_login: Returns the login of the submitting user, if any
        clock: Source of the creation timestamp
    """

    def __init__(
        self,
        repository: YoRCRepository,
        identity_service: Optional[OwnerIdentityService] = None,
        current_login: Callable[[], Optional[str]] = anonymous,
        clock: Callable[[], datetime] = _utc_now
    ):
        self.repository = repository
        self.identity_service = identity_service or OwnerIdentityService(repository)
        self.current_login = current_login
        self.clock = clock

    def ingest(self, raw_document: Union[str, bytes]) -> IngestionResult:
        """Decode and persist one document.

        The snapshot and its languages are written in a single
        transaction, so a failed language row leaves nothing behind.
        The owner is resolved beforehand in its own write; if the
        snapshot then fails to save, the owner stays and is reused by
        the next submission from the same login.

        Args:
            raw_document: JSON text or bytes as submitted by the generator

        Returns:
            IngestionResult with the new id, or the ParseError

        Raises:
            StorageError: If persisting fails
        """
        _LOGGER.debug("yorc_document_received", size=len(raw_document or ""))
        try:
            yorc = decode_yorc(raw_document)
        except ParseError as e:
            _LOGGER.warning("yorc_ingest_rejected", reason=str(e))
            return IngestionResult(error=e)

        owner = self.identity_service.find_or_create_owner(self.current_login())
        yorc = dataclasses.replace(
            yorc,
            creation_date=self.clock(),
            owner_id=owner.id if owner else None
        )
        record_id = self.repository.save(yorc)
        _LOGGER.info(
            "yorc_ingested",
            record_id=record_id,
            owner_id=yorc.owner_id,
            languages=len(yorc.selected_languages)
        )
        return IngestionResult(record_id=record_id)
