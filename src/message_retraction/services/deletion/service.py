"""Delete-for-everyone orchestration.

Validation and authorization failures abort the request. Once the target is
soft-deleted, the remaining steps (preview recomputation, mirror cleanup) are
best effort: their failures are logged and returned as warnings and never turn
the retraction into an error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from message_retraction.core.settings import Settings
from message_retraction.schemas.deletion import DeleteMessageRequest, DeleteMessageResponse
from message_retraction.store import (
    CollectionReference,
    DocumentReference,
    DocumentSnapshot,
    DocumentStore,
    StoreError,
)

from . import paths
from .batch_writer import DEFAULT_CHUNK_SIZE, BatchedWriter
from .errors import DeletionError, FailedPrecondition, Internal
from .fields import (
    LAST_MESSAGE_ID_ALIASES,
    PREVIEW_TIMESTAMP_ALIASES,
    as_trimmed_string,
    first_present,
    timestamps_equal,
)
from .mirror import MIRROR_LOOKUP_FAILED, MirrorOutcome, correlation_id_of, retract_mirror
from .permissions import authorize_direct_delete, authorize_group_delete
from .previews import aggregate_patch, replica_patch
from .probe import ProbeResult, load_recent_page, probe_effective_latest
from .recompute import (
    DEFAULT_STRATEGIES,
    ReplacementStrategy,
    SearchContext,
    SearchOutcome,
    find_replacement,
)
from .soft_delete import soft_delete
from .topology import GroupTopology, resolve_group
from .validation import ValidatedRequest, validate_request

logger = logging.getLogger(__name__)

LATEST_PROBE_FAILED = "latest_probe_failed"
REPLACEMENT_SEARCH_FAILED = "replacement_search_failed"
UPDATE_PREVIEWS_FAILED = "update_previews_failed"
UPDATE_AGGREGATE_PREVIEW_FAILED = "update_aggregate_preview_failed"


def _warn(warnings: list[str], code: str) -> None:
    if code not in warnings:
        warnings.append(code)


def preview_reflects(
    preview: Mapping[str, Any],
    message_ids: set[str],
    message_timestamp: Any,
) -> bool:
    """Tell whether a preview currently shows one of `message_ids`.

    A stored latest-message pointer decides when present; an empty pointer
    marks a cleared preview and reflects nothing. Legacy previews without a
    pointer are matched on timestamp equality.
    """
    pointer = first_present(preview, LAST_MESSAGE_ID_ALIASES)
    if isinstance(pointer, str):
        pointer = pointer.strip()
        return bool(pointer) and pointer in message_ids
    return timestamps_equal(first_present(preview, PREVIEW_TIMESTAMP_ALIASES), message_timestamp)


class MessageDeletionService:
    """Retract a message for every participant and repair the previews."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        group_prefix: str = "event_",
        page_size: int = 200,
        max_extra_pages: int = 5,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        strategies: Sequence[ReplacementStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.store = store
        self.group_prefix = group_prefix
        self.page_size = page_size
        self.max_extra_pages = max_extra_pages
        self.strategies = tuple(strategies)
        self.writer = BatchedWriter(store, chunk_size=chunk_size)

    @classmethod
    def from_settings(cls, store: DocumentStore, config: Settings) -> MessageDeletionService:
        return cls(
            store,
            group_prefix=config.group_conversation_prefix,
            page_size=config.deletion_scan_page_size,
            max_extra_pages=config.deletion_max_extra_pages,
            chunk_size=config.preview_batch_chunk_size,
        )

    def delete_message(
        self,
        caller_id: str | None,
        request: DeleteMessageRequest,
    ) -> DeleteMessageResponse:
        """Soft-delete a message for everyone in its conversation.

        Args:
            caller_id: Authenticated caller, or None if unauthenticated
            request: Conversation and message identifiers

        Returns:
            The success payload; `status="missing"` when the message is absent

        Raises:
            DeletionError: Tagged failure (unauthenticated, invalid-argument,
                not-found, failed-precondition, permission-denied, internal)
        """
        validated = validate_request(caller_id, request, self.group_prefix)
        logger.info(
            "Retraction requested by %s for %s in %s (group=%s)",
            validated.caller_id,
            validated.message_id,
            validated.conversation_id,
            validated.is_group,
        )
        try:
            if validated.group_id is not None:
                return self._delete_group(validated, validated.group_id)
            return self._delete_direct(validated)
        except DeletionError:
            raise
        except Exception as exc:
            logger.exception(
                "Retraction of %s in %s failed", validated.message_id, validated.conversation_id
            )
            raise Internal("Failed to delete message") from exc

    # -- group conversations -------------------------------------------------

    def _delete_group(self, request: ValidatedRequest, group_id: str) -> DeleteMessageResponse:
        group = resolve_group(self.store, group_id)
        log = paths.group_log(self.store, group_id)

        target = log.document(request.message_id).get()
        if not target.exists:
            logger.warning(
                "Group message %s not found in %s; nothing to do", request.message_id, group_id
            )
            return DeleteMessageResponse(status="missing")

        sender_id = as_trimmed_string(target.get("sender_id"))
        if not sender_id:
            logger.error("Group message %s in %s has no sender_id", request.message_id, group_id)
            raise FailedPrecondition("Message is invalid")

        authorize_group_delete(request.caller_id, sender_id, group, request.message_id)

        warnings: list[str] = []
        probe = probe_effective_latest(log, request.message_id, self.page_size)
        if probe.failed:
            _warn(warnings, LATEST_PROBE_FAILED)

        soft_delete(target, request.caller_id)

        updated = 0
        if probe.was_latest:
            try:
                updated = self._refresh_group_previews(request, group, log, probe, warnings)
            except Exception:
                logger.exception(
                    "Preview refresh after retracting %s in %s failed", request.message_id, group_id
                )
                _warn(warnings, UPDATE_PREVIEWS_FAILED)

        logger.info(
            "Group message %s in %s soft-deleted by %s (updated_previews=%d, warnings=%s)",
            request.message_id,
            group_id,
            request.caller_id,
            updated,
            warnings,
        )
        return DeleteMessageResponse(updated_previews=updated, warnings=warnings)

    def _refresh_group_previews(
        self,
        request: ValidatedRequest,
        group: GroupTopology,
        log: CollectionReference,
        probe: ProbeResult,
        warnings: list[str],
    ) -> int:
        outcome = self._search(log, frozenset({request.message_id}), probe.recent_page, warnings)

        conversation_key = f"{self.group_prefix}{group.group_id}"
        replicas = [
            paths.preview_replica(self.store, participant_id, conversation_key)
            for participant_id in group.participant_ids
        ]
        result = self.writer.merge_all(replicas, replica_patch(outcome.replacement))
        if not result.ok:
            _warn(warnings, UPDATE_PREVIEWS_FAILED)

        try:
            group.aggregate.set(aggregate_patch(outcome.replacement), merge=True)
        except StoreError as exc:
            logger.warning("Failed to update aggregate preview of %s: %s", group.group_id, exc)
            _warn(warnings, UPDATE_AGGREGATE_PREVIEW_FAILED)

        return result.written

    # -- direct conversations ------------------------------------------------

    def _delete_direct(self, request: ValidatedRequest) -> DeleteMessageResponse:
        caller_id = request.caller_id
        peer_id = request.conversation_id
        own_log = paths.direct_log(self.store, caller_id, peer_id)

        own = own_log.document(request.message_id).get()
        if not own.exists:
            logger.warning(
                "Own copy of %s with %s not found for %s; nothing to do",
                request.message_id,
                peer_id,
                caller_id,
            )
            return DeleteMessageResponse(status="missing")

        own_data = own.to_dict() or {}
        authorize_direct_delete(
            caller_id, as_trimmed_string(own_data.get("sender_id")), peer_id, request.message_id
        )

        warnings: list[str] = []
        probe = probe_effective_latest(own_log, request.message_id, self.page_size)
        if probe.failed:
            _warn(warnings, LATEST_PROBE_FAILED)

        soft_delete(own, caller_id)

        correlation_id = correlation_id_of(own_data, request.message_id)
        try:
            mirror = retract_mirror(self.store, caller_id, peer_id, request.message_id, correlation_id)
        except Exception:
            logger.exception("Peer copy cleanup for %s with %s failed", request.message_id, peer_id)
            mirror = MirrorOutcome(warnings=[MIRROR_LOOKUP_FAILED])
        for code in mirror.warnings:
            _warn(warnings, code)

        updated = 0
        try:
            updated = self._refresh_direct_previews(
                request, own_log, own_data, correlation_id, probe, mirror, warnings
            )
        except Exception:
            logger.exception(
                "Preview refresh after retracting %s with %s failed", request.message_id, peer_id
            )
            _warn(warnings, UPDATE_PREVIEWS_FAILED)

        logger.info(
            "Direct message %s with %s soft-deleted by %s "
            "(deleted_other=%d, updated_previews=%d, warnings=%s)",
            request.message_id,
            peer_id,
            caller_id,
            mirror.deleted,
            updated,
            warnings,
        )
        return DeleteMessageResponse(
            deleted_other=mirror.deleted,
            updated_previews=updated,
            warnings=warnings,
        )

    def _refresh_direct_previews(
        self,
        request: ValidatedRequest,
        own_log: CollectionReference,
        own_data: Mapping[str, Any],
        correlation_id: str,
        probe: ProbeResult,
        mirror: MirrorOutcome,
        warnings: list[str],
    ) -> int:
        """Repair each side's preview that still shows the retracted message.

        Each side is decided from its own preview, so a retry after a failed
        write repairs what the first attempt left behind.
        """
        caller_id = request.caller_id
        peer_id = request.conversation_id
        known_ids = {request.message_id, correlation_id}
        message_timestamp = own_data.get("timestamp")
        writes: list[tuple[DocumentReference, dict[str, Any]]] = []

        caller_preview = paths.preview_replica(self.store, caller_id, peer_id).get()
        if caller_preview.exists:
            write = self._direct_side_write(
                caller_preview,
                own_log,
                known_ids,
                frozenset({request.message_id}),
                message_timestamp,
                None if probe.failed else probe.recent_page,
                warnings,
            )
            if write is not None:
                writes.append(write)
        else:
            logger.warning(
                "No conversation preview for %s with %s while retracting %s",
                caller_id,
                peer_id,
                request.message_id,
            )

        if mirror.mirror_id is not None:
            try:
                peer_preview = paths.preview_replica(self.store, peer_id, caller_id).get()
            except StoreError as exc:
                logger.warning("Failed to read preview of %s with %s: %s", peer_id, caller_id, exc)
                _warn(warnings, UPDATE_PREVIEWS_FAILED)
                peer_preview = None
            if peer_preview is not None and peer_preview.exists:
                write = self._direct_side_write(
                    peer_preview,
                    paths.direct_log(self.store, peer_id, caller_id),
                    known_ids | {mirror.mirror_id},
                    frozenset({mirror.mirror_id}),
                    message_timestamp,
                    None,
                    warnings,
                )
                if write is not None:
                    writes.append(write)

        if not writes:
            return 0
        result = self.writer.merge_each(writes)
        if not result.ok:
            _warn(warnings, UPDATE_PREVIEWS_FAILED)
        return result.written

    def _direct_side_write(
        self,
        preview: DocumentSnapshot,
        log: CollectionReference,
        reflected_ids: set[str],
        excluded_ids: frozenset[str],
        message_timestamp: Any,
        recent_page: list[DocumentSnapshot] | None,
        warnings: list[str],
    ) -> tuple[DocumentReference, dict[str, Any]] | None:
        """Return the preview write for one side, or None if it needs none."""
        if not preview_reflects(preview.to_dict() or {}, reflected_ids, message_timestamp):
            return None
        try:
            page = recent_page if recent_page is not None else load_recent_page(log, self.page_size)
        except StoreError as exc:
            logger.warning("Failed to load recent messages of %s: %s", log.path, exc)
            _warn(warnings, UPDATE_PREVIEWS_FAILED)
            return None
        outcome = self._search(log, excluded_ids, page, warnings)
        return preview.reference, replica_patch(outcome.replacement)

    def _search(
        self,
        log: CollectionReference,
        excluded_ids: frozenset[str],
        recent_page: list[DocumentSnapshot],
        warnings: list[str],
    ) -> SearchOutcome:
        outcome = find_replacement(
            SearchContext(
                log=log,
                excluded_ids=excluded_ids,
                recent_page=recent_page,
                page_size=self.page_size,
                max_extra_pages=self.max_extra_pages,
            ),
            self.strategies,
        )
        if outcome.incomplete:
            _warn(warnings, REPLACEMENT_SEARCH_FAILED)
        return outcome
