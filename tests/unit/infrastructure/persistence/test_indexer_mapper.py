"""Unit tests for the indexer row mapper."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from indexer_service.domain.indexer.model.value import IndexerStatus
from indexer_service.domain.shared.error import (
    PersistenceError,
    QueueError,
    StorageUnavailableError,
)
from indexer_service.infrastructure.persistence.errors import translate_errors
from indexer_service.infrastructure.persistence.mappers.indexer import (
    indexer_to_dict,
    row_to_indexer,
)


class TestIndexerMapper:
    def test_dict_uses_variant_names_and_text_id(self, make_indexer):
        indexer = make_indexer(status=IndexerStatus.RUNNING, process_id=99)

        row = indexer_to_dict(indexer)

        assert row["id"] == str(indexer.id)
        assert row["status"] == "Running"
        assert row["indexer_type"] == "Webhook"
        assert row["process_id"] == 99

    def test_row_round_trips_to_equal_aggregate(self, make_indexer):
        indexer = make_indexer(status=IndexerStatus.FAILED_RUNNING, process_id=5)

        assert row_to_indexer(indexer_to_dict(indexer)) == indexer

    def test_naive_timestamps_are_read_as_utc(self, make_indexer):
        row = indexer_to_dict(make_indexer())
        row["created_at"] = datetime(2024, 1, 2, 3, 4, 5)
        row["updated_at"] = datetime(2024, 1, 2, 3, 4, 5)

        indexer = row_to_indexer(row)

        assert indexer.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    @pytest.mark.parametrize(
        "column,value",
        [
            ("status", "Paused"),
            ("indexer_type", "Cron"),
            ("id", "not-a-uuid"),
        ],
    )
    def test_unknown_values_are_persistence_errors(self, make_indexer, column, value):
        row = indexer_to_dict(make_indexer())
        row[column] = value

        with pytest.raises(PersistenceError, match="Corrupt indexer row"):
            row_to_indexer(row)

    def test_row_violating_process_id_invariant_is_rejected(self, make_indexer):
        row = indexer_to_dict(make_indexer(status=IndexerStatus.CREATED))
        row["status"] = "Running"

        with pytest.raises(PersistenceError):
            row_to_indexer(row)


class TestTranslateErrors:
    def test_connectivity_failure_is_storage_unavailable(self):
        with pytest.raises(StorageUnavailableError):
            with translate_errors("load indexer"):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    def test_other_failures_use_given_error_class(self):
        with pytest.raises(QueueError, match="send message"):
            with translate_errors("send message", QueueError):
                raise IntegrityError("INSERT", {}, Exception("duplicate"))

    def test_connectivity_failure_on_queue_stays_queue_error(self):
        with pytest.raises(QueueError) as exc_info:
            with translate_errors("receive message", QueueError):
                raise OperationalError("SELECT 1", {}, Exception("gone"))

        assert not isinstance(exc_info.value, StorageUnavailableError)

    def test_non_database_errors_pass_through(self):
        with pytest.raises(KeyError):
            with translate_errors("load indexer"):
                raise KeyError("x")
