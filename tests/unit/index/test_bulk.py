"""Tests for bulk write mode."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from elasticsearch import TransportError

from elasticwrap.exceptions import BulkError, ConfigurationError, ConnectionError
from elasticwrap.index.bulk import BufferedMode, BulkBuffer, DirectMode
from elasticwrap.index.handle import IndexHandle


def _sent_actions(es_client: MagicMock, call: int = 0) -> list[dict]:
    return es_client.bulk.call_args_list[call].kwargs["operations"]


# ── Buffer ───────────────────────────────────────────────────────────────────


class TestBulkBuffer:
    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ConfigurationError):
            BulkBuffer(threshold=0)

    def test_add_builds_index_action(self) -> None:
        buf = BulkBuffer(threshold=10)
        buf.add("unit_test", {"test": "bla"}, "1")
        buf.add("unit_test", {"test": "blubb"})
        assert buf.pending == 2
        assert buf.actions[0] == ({"index": {"_index": "unit_test", "_id": "1"}}, {"test": "bla"})
        assert buf.actions[1] == ({"index": {"_index": "unit_test"}}, {"test": "blubb"})

    def test_empty_flush_sends_nothing(self, es_client: MagicMock) -> None:
        result = BulkBuffer(threshold=2).flush(es_client)
        assert result.submitted == 0
        es_client.bulk.assert_not_called()

    def test_flush_reports_item_errors(self, es_client: MagicMock) -> None:
        es_client.bulk.return_value = {
            "took": 2,
            "errors": True,
            "items": [
                {"index": {"_id": "1", "status": 201, "result": "created"}},
                {"index": {"_id": "2", "status": 400, "error": {"type": "mapper_parsing_exception", "reason": "bad"}}},
            ],
        }
        buf = BulkBuffer(threshold=5)
        buf.add("i", {"a": 1}, "1")
        buf.add("i", {"a": "x"}, "2")

        result = buf.flush(es_client)

        assert result.submitted == 2
        assert result.indexed == 1
        assert result.errors[0].doc_id == "2"
        assert result.errors[0].status == 400
        assert result.errors[0].reason == "bad"


# ── Handle in bulk mode ──────────────────────────────────────────────────────


class TestBulkMode:
    def test_mode_switch(self, handle: IndexHandle) -> None:
        assert isinstance(handle._mode, DirectMode)
        handle.start_bulk(5)
        assert isinstance(handle._mode, BufferedMode)
        assert handle.in_bulk
        handle.stop_bulk()
        assert isinstance(handle._mode, DirectMode)

    def test_index_is_buffered(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk(5)
        assert handle.index({"test": "bla"}, "1") == ""
        assert handle.pending == 1
        es_client.index.assert_not_called()
        es_client.bulk.assert_not_called()

    def test_flush_when_threshold_reached(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk(3)
        for i in range(3):
            handle.index({"n": i}, str(i))

        es_client.bulk.assert_called_once()
        assert len(_sent_actions(es_client)) == 6
        assert handle.pending == 0

        handle.index({"n": 3}, "3")
        assert handle.pending == 1
        es_client.bulk.assert_called_once()

    def test_stop_flushes_partial_batch(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk(10)
        handle.index({"n": 1}, "1")
        handle.index({"n": 2})

        result = handle.stop_bulk()

        assert result.submitted == 2
        assert _sent_actions(es_client) == [
            {"index": {"_index": "unit_test", "_id": "1"}},
            {"n": 1},
            {"index": {"_index": "unit_test"}},
            {"n": 2},
        ]
        assert not handle.in_bulk

    def test_start_bulk_zero_raises(self, handle: IndexHandle) -> None:
        with pytest.raises(ConfigurationError):
            handle.start_bulk(0)
        assert not handle.in_bulk

    def test_default_size_from_settings(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk()
        for i in range(3):
            handle.index({"n": i})
        es_client.bulk.assert_called_once()

    def test_failed_flush_drops_batch(self, handle: IndexHandle, es_client: MagicMock) -> None:
        es_client.bulk.side_effect = [TransportError("Connection reset"), {"items": []}]
        handle.start_bulk(2)
        handle.index({"n": 1})

        with pytest.raises(BulkError) as exc_info:
            handle.index({"n": 2})
        assert exc_info.value.dropped == 2
        assert handle.pending == 0

        handle.index({"n": 3})
        handle.stop_bulk()
        assert len(_sent_actions(es_client, call=1)) == 2

    def test_failed_stop_still_leaves_bulk_mode(self, handle: IndexHandle, es_client: MagicMock) -> None:
        es_client.bulk.side_effect = TransportError("Connection reset")
        handle.start_bulk(10)
        handle.index({"n": 1})

        with pytest.raises(BulkError):
            handle.stop_bulk()
        assert not handle.in_bulk

    def test_stop_without_connection_reports_dropped(self, handle: IndexHandle, es_client: MagicMock) -> None:
        es_client.info.side_effect = TransportError("Connection refused")
        handle.start_bulk(10)
        handle.index({"n": 1})
        handle.index({"n": 2})

        with pytest.raises(BulkError) as exc_info:
            handle.stop_bulk()
        assert exc_info.value.dropped == 2
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert not handle.in_bulk
        es_client.bulk.assert_not_called()

    def test_threshold_flush_without_connection_clears_buffer(
        self, handle: IndexHandle, es_client: MagicMock
    ) -> None:
        es_client.info.side_effect = TransportError("Connection refused")
        handle.start_bulk(2)
        handle.index({"n": 1})

        with pytest.raises(BulkError) as exc_info:
            handle.index({"n": 2})
        assert exc_info.value.dropped == 2
        assert handle.pending == 0
        assert handle.in_bulk

    def test_stop_without_start_is_noop(self, handle: IndexHandle, es_client: MagicMock) -> None:
        assert handle.stop_bulk().submitted == 0
        es_client.bulk.assert_not_called()

    def test_restart_discards_pending(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk(10)
        handle.index({"n": 1})
        handle.start_bulk(10)
        assert handle.pending == 0
        handle.stop_bulk()
        es_client.bulk.assert_not_called()

    def test_explicit_flush_keeps_bulk_mode(self, handle: IndexHandle, es_client: MagicMock) -> None:
        handle.start_bulk(10)
        handle.index({"n": 1})
        assert handle.flush().submitted == 1
        assert handle.in_bulk
        assert handle.pending == 0

    def test_context_manager(self, handle: IndexHandle, es_client: MagicMock) -> None:
        with handle.bulk(10) as h:
            assert h is handle
            h.index({"n": 1}, "1")
            es_client.bulk.assert_not_called()
        es_client.bulk.assert_called_once()
        assert not handle.in_bulk
