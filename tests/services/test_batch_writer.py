# tests/services/test_batch_writer.py
"""Tests for chunked preview fan-out."""

import pytest

from message_retraction.services.deletion.batch_writer import BatchedWriter
from message_retraction.store import StoreError, WriteBatch


def _replicas(store, count):
    return [store.document(f"Connections/u{index}/Conversations/event_g1") for index in range(count)]


def test_thousand_replicas_commit_in_three_chunks(store, mocker) -> None:
    spy = mocker.spy(WriteBatch, "commit")
    writer = BatchedWriter(store, chunk_size=400)

    result = writer.merge_all(_replicas(store, 1000), {"last_message": "hi"})

    assert spy.call_count == 3
    assert result.commits == 3
    assert result.written == 1000
    assert result.ok is True
    written = store.collection("Connections/u999/Conversations").get()
    assert [s.to_dict() for s in written] == [{"last_message": "hi"}]


def test_merge_keeps_unrelated_preview_fields(store) -> None:
    ref = store.document("Connections/u1/Conversations/event_g1")
    ref.set({"unread": 3, "last_message": "old"})

    BatchedWriter(store).merge_all([ref], {"last_message": "new"})

    assert ref.get().to_dict() == {"unread": 3, "last_message": "new"}


def test_failed_chunk_does_not_stop_later_chunks(store, mocker) -> None:
    original_commit = WriteBatch.commit
    calls = {"count": 0}

    def flaky_commit(batch):
        calls["count"] += 1
        if calls["count"] == 2:
            raise StoreError("deadline exceeded")
        return original_commit(batch)

    mocker.patch.object(WriteBatch, "commit", autospec=True, side_effect=flaky_commit)
    refs = _replicas(store, 5)

    result = BatchedWriter(store, chunk_size=2).merge_all(refs, {"last_message": "x"})

    assert result.failed_chunks == [1]
    assert result.ok is False
    assert result.commits == 2
    assert result.written == 3
    assert [ref.get().exists for ref in refs] == [True, True, False, False, True]


def test_merge_each_applies_separate_patches(store) -> None:
    first, second = _replicas(store, 2)
    result = BatchedWriter(store).merge_each([(first, {"n": 1}), (second, {"n": 2})])

    assert result.written == 2
    assert first.get().to_dict() == {"n": 1}
    assert second.get().to_dict() == {"n": 2}


def test_no_writes_means_no_commits(store, mocker) -> None:
    spy = mocker.spy(WriteBatch, "commit")
    result = BatchedWriter(store).merge_all([], {"n": 1})
    assert result.commits == 0
    spy.assert_not_called()


@pytest.mark.parametrize("chunk_size", [0, 501])
def test_chunk_size_must_fit_a_batch(store, chunk_size) -> None:
    with pytest.raises(ValueError):
        BatchedWriter(store, chunk_size=chunk_size)
