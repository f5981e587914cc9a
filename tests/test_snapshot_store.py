"""
test_snapshot_store.py — Rolling history, deduplication, reset and lock timeouts.

Common examples:
  pytest -q tests/test_snapshot_store.py
"""

from datetime import datetime, timedelta

import pytest

from content_integrity.core.errors import StorageUnavailable

T0 = datetime(2024, 1, 1, 12, 0, 0)


def test_history_is_bounded_fifo(store, make_metrics):
    for i in range(7):
        store.append("doc-1", make_metrics(words=i, content_hash=f"h{i}",
                                           timestamp=T0 + timedelta(minutes=i)))
    history = store.history("doc-1")
    assert len(history) == 5
    assert [m.word_count for m in history] == [2, 3, 4, 5, 6]
    assert store.count("doc-1") == 5
    assert store.latest("doc-1").content_hash == "h6"


def test_capacity_override_per_call(store, make_metrics):
    for i in range(4):
        store.append("doc-1", make_metrics(content_hash=f"h{i}",
                                           timestamp=T0 + timedelta(minutes=i)), capacity=2)
    assert [m.content_hash for m in store.history("doc-1")] == ["h2", "h3"]


def test_same_hash_append_is_a_noop(store, make_metrics):
    assert store.append("doc-1", make_metrics(content_hash="same"))
    assert not store.append("doc-1", make_metrics(content_hash="same",
                                                  timestamp=T0 + timedelta(hours=1)))
    assert store.count("doc-1") == 1


def test_timestamps_strictly_increase(store, make_metrics):
    store.append("doc-1", make_metrics(content_hash="a", timestamp=T0))
    store.append("doc-1", make_metrics(content_hash="b", timestamp=T0))
    store.append("doc-1", make_metrics(content_hash="c", timestamp=T0 - timedelta(days=1)))
    stamps = [m.timestamp for m in store.history("doc-1")]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 3


def test_capture_returns_prior_history(store, make_metrics):
    prior, current = store.capture("doc-1", make_metrics(content_hash="a"))
    assert prior == [] and current.content_hash == "a"

    prior, current = store.capture("doc-1", make_metrics(content_hash="b",
                                                         timestamp=T0 + timedelta(minutes=1)))
    assert [m.content_hash for m in prior] == ["a"]

    # resaving identical content leaves history untouched and reports the same prior
    again, current = store.capture("doc-1", make_metrics(content_hash="b",
                                                         timestamp=T0 + timedelta(minutes=2)))
    assert [m.content_hash for m in again] == ["a"]
    assert current.timestamp == T0 + timedelta(minutes=1)
    assert store.count("doc-1") == 2


def test_round_trip_preserves_metrics(store, make_metrics):
    m = make_metrics(words=321, links=7, outline=(1, 2, 2, 3), content_hash="x")
    store.append("doc-1", m)
    assert store.history("doc-1") == [m]


def test_documents_are_isolated(store, make_metrics):
    store.append("doc-1", make_metrics("doc-1", content_hash="a"))
    store.append("doc-2", make_metrics("doc-2", content_hash="b"))
    assert store.reset("doc-1") == 1
    assert store.history("doc-1") == []
    assert store.count("doc-2") == 1


def test_reset_empty_history(store):
    assert store.reset("nothing") == 0


def test_metrics_must_belong_to_document(store, make_metrics):
    with pytest.raises(ValueError):
        store.append("doc-1", make_metrics("doc-2"))


def test_lock_timeout_raises_storage_unavailable(store, make_metrics):
    with store.locked("doc-1"):
        with pytest.raises(StorageUnavailable) as exc:
            store.append("doc-1", make_metrics())
    assert exc.value.document_id == "doc-1"
    # other documents are not blocked while doc-1 is held
    with store.locked("doc-1"):
        assert store.append("doc-2", make_metrics("doc-2"))
