"""Search for the message that should replace a retracted preview.

The search is an ordered list of strategies, cheapest first. The first one
that returns a snapshot wins; a strategy that raises :class:`StoreError`
counts as a miss and the next one runs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from message_retraction.store import CollectionReference, DocumentSnapshot, StoreError

from .fields import message_text, message_type
from .probe import TIMESTAMP_FIELD, first_visible, newest_first

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Replacement:
    """The message a preview should show after the retraction."""

    id: str
    text: str
    type: str
    timestamp: Any

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Replacement:
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            text=message_text(data),
            type=message_type(data),
            timestamp=data.get(TIMESTAMP_FIELD),
        )


@dataclass
class SearchContext:
    """Inputs shared by every strategy for one log."""

    log: CollectionReference
    excluded_ids: frozenset[str]
    recent_page: list[DocumentSnapshot] = field(default_factory=list)
    page_size: int = 200
    max_extra_pages: int = 5


@dataclass
class SearchOutcome:
    replacement: Replacement | None
    failed_strategies: list[str] = field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        """True when nothing was found but some strategy could not run."""
        return self.replacement is None and bool(self.failed_strategies)


class ReplacementStrategy(Protocol):
    name: str

    def find(self, context: SearchContext) -> DocumentSnapshot | None:
        ...


class RecentPageScan:
    """Reuse the page the probe already fetched."""

    name = "recent_page"

    def find(self, context: SearchContext) -> DocumentSnapshot | None:
        return first_visible(context.recent_page, context.excluded_ids)


class IndexedQuery:
    """Ask the store directly for the newest message explicitly marked visible.

    Older messages that never had `is_deleted` written are invisible to this
    query, which is why the paginated scan follows it.
    """

    name = "indexed_query"

    def find(self, context: SearchContext) -> DocumentSnapshot | None:
        snapshots = (
            newest_first(context.log.where("is_deleted", "==", False))
            .limit(1 + len(context.excluded_ids))
            .get()
        )
        return first_visible(snapshots, context.excluded_ids)


class PaginatedScan:
    """Walk further back from the end of the recent page, a bounded number of pages."""

    name = "paginated_scan"

    def find(self, context: SearchContext) -> DocumentSnapshot | None:
        if len(context.recent_page) < context.page_size:
            # A short first page already reached the start of the log.
            return None

        cursor = context.recent_page[-1]
        for _ in range(context.max_extra_pages):
            page = newest_first(context.log).start_after(cursor).limit(context.page_size).get()
            if not page:
                return None
            found = first_visible(page, context.excluded_ids)
            if found is not None:
                return found
            if len(page) < context.page_size:
                return None
            cursor = page[-1]
        return None


DEFAULT_STRATEGIES: tuple[ReplacementStrategy, ...] = (
    RecentPageScan(),
    IndexedQuery(),
    PaginatedScan(),
)


def find_replacement(
    context: SearchContext,
    strategies: Sequence[ReplacementStrategy] = DEFAULT_STRATEGIES,
) -> SearchOutcome:
    """Run `strategies` in order and stop at the first hit."""
    outcome = SearchOutcome(replacement=None)
    for strategy in strategies:
        try:
            found = strategy.find(context)
        except StoreError as exc:
            logger.warning(
                "Replacement strategy %s failed on %s: %s", strategy.name, context.log.path, exc
            )
            outcome.failed_strategies.append(strategy.name)
            continue
        if found is not None:
            logger.debug("Replacement %s found by %s", found.id, strategy.name)
            outcome.replacement = Replacement.from_snapshot(found)
            return outcome
    return outcome
