# tests/services/test_recompute.py
"""Tests for the effective-latest probe and the replacement strategies."""

from message_retraction.services.deletion.probe import load_recent_page, probe_effective_latest
from message_retraction.services.deletion.recompute import (
    IndexedQuery,
    PaginatedScan,
    RecentPageScan,
    Replacement,
    SearchContext,
    find_replacement,
)
from message_retraction.store import Query, StoreError
from tests.helpers import add_message, stored_ts


def _log(store):
    return store.collection("EventChats/g1/Messages")


def test_probe_detects_latest_visible_message(store) -> None:
    log = _log(store)
    add_message(log, "m1", "bob", 1)
    add_message(log, "m2", "bob", 2)
    add_message(log, "m3", "bob", 3, deleted=True)

    assert probe_effective_latest(log, "m2", 200).was_latest is True
    assert probe_effective_latest(log, "m1", 200).was_latest is False
    assert probe_effective_latest(log, "m3", 200).was_latest is False


def test_probe_failure_is_reported_not_raised(store, mocker) -> None:
    log = _log(store)
    mocker.patch(
        "message_retraction.services.deletion.probe.load_recent_page",
        side_effect=StoreError("boom"),
    )
    result = probe_effective_latest(log, "m1", 200)
    assert result.failed is True
    assert result.was_latest is False


def test_recent_page_scan_skips_excluded_and_deleted(store) -> None:
    log = _log(store)
    add_message(log, "m1", "bob", 1, text="keep")
    add_message(log, "m2", "bob", 2, deleted=True)
    add_message(log, "m3", "bob", 3)
    context = SearchContext(log=log, excluded_ids=frozenset({"m3"}), recent_page=load_recent_page(log, 10))

    found = RecentPageScan().find(context)
    assert found is not None
    assert found.id == "m1"


def test_indexed_query_only_sees_explicitly_visible_messages(store) -> None:
    log = _log(store)
    add_message(log, "legacy", "bob", 3)
    add_message(log, "flagged", "bob", 2, deleted=False)
    add_message(log, "target", "bob", 4, deleted=False)

    found = IndexedQuery().find(SearchContext(log=log, excluded_ids=frozenset({"target"})))
    assert found is not None
    assert found.id == "flagged"


def test_paginated_scan_walks_past_deleted_pages(store) -> None:
    log = _log(store)
    add_message(log, "visible", "bob", 0)
    for index in range(1, 8):
        add_message(log, f"gone{index}", "bob", index, deleted=True)

    page = load_recent_page(log, 3)
    context = SearchContext(
        log=log, excluded_ids=frozenset(), recent_page=page, page_size=3, max_extra_pages=5
    )
    assert RecentPageScan().find(context) is None
    found = PaginatedScan().find(context)
    assert found is not None
    assert found.id == "visible"


def test_paginated_scan_respects_page_budget(store) -> None:
    log = _log(store)
    add_message(log, "visible", "bob", 0)
    for index in range(1, 8):
        add_message(log, f"gone{index}", "bob", index, deleted=True)

    context = SearchContext(
        log=log,
        excluded_ids=frozenset(),
        recent_page=load_recent_page(log, 2),
        page_size=2,
        max_extra_pages=1,
    )
    assert PaginatedScan().find(context) is None


def test_paginated_scan_skips_short_first_page(store, mocker) -> None:
    log = _log(store)
    add_message(log, "m1", "bob", 1, deleted=True)
    context = SearchContext(log=log, excluded_ids=frozenset(), recent_page=load_recent_page(log, 5), page_size=5)
    spy = mocker.spy(Query, "start_after")
    assert PaginatedScan().find(context) is None
    spy.assert_not_called()


class _Fixed:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    def find(self, context):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def test_find_replacement_short_circuits(store) -> None:
    log = _log(store)
    add_message(log, "m1", "bob", 1, text="hello", message_type="image")
    snapshot = log.document("m1").get()

    first = _Fixed("first", result=snapshot)
    second = _Fixed("second")
    outcome = find_replacement(SearchContext(log=log, excluded_ids=frozenset()), [first, second])

    assert outcome.replacement == Replacement(id="m1", text="hello", type="image", timestamp=stored_ts(1))
    assert second.calls == 0
    assert outcome.incomplete is False


def test_failed_strategy_is_a_miss(store) -> None:
    log = _log(store)
    add_message(log, "m1", "bob", 1)
    failing = _Fixed("failing", error=StoreError("missing index"))
    fallback = _Fixed("fallback", result=log.document("m1").get())

    outcome = find_replacement(SearchContext(log=log, excluded_ids=frozenset()), [failing, fallback])
    assert outcome.replacement is not None
    assert outcome.failed_strategies == ["failing"]
    assert outcome.incomplete is False


def test_exhausted_search_with_failures_is_incomplete(store) -> None:
    log = _log(store)
    outcome = find_replacement(
        SearchContext(log=log, excluded_ids=frozenset()),
        [_Fixed("empty"), _Fixed("failing", error=StoreError("down"))],
    )
    assert outcome.replacement is None
    assert outcome.incomplete is True
