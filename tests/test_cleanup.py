"""Tests for the inactivity sweep and its scheduler"""

from datetime import timedelta

import pytest

from qticket.models.credential import CredentialRecord
from qticket.services.cleanup import CleanupService
from qticket.services.credential_store import CredentialStore
from qticket.services.queue_state_store import QueueStateStore
from qticket.storage.base import CREDENTIALS_KEY, queue_state_key


def _seed(storage, clock, name, last_accessed):
    CredentialStore(storage, clock).upsert(
        name, CredentialRecord(created_at=clock(), last_accessed_at=last_accessed)
    )
    QueueStateStore(storage, name, clock).append_ticket(1)


@pytest.fixture
def service(storage, clock):
    return CleanupService(CredentialStore(storage, clock), storage, clock)


def test_removes_only_inactive_queues(storage, clock, service):
    now = clock()
    _seed(storage, clock, "Stale", now - timedelta(days=2))
    _seed(storage, clock, "Fresh", now - timedelta(hours=1))

    report = service.run_cleanup()

    assert report.removed == ["Stale"]
    assert report.kept == ["Fresh"]
    assert storage.get(queue_state_key("Stale")) is None
    assert storage.get(queue_state_key("Fresh")) is not None
    assert list(storage.get(CREDENTIALS_KEY)["queues"]) == ["Fresh"]
    assert service.last_report is report


def test_record_without_timestamp_is_kept(storage, clock, service):
    _seed(storage, clock, "NoStamp", None)
    report = service.run_cleanup()
    assert report.removed == []
    assert report.kept == ["NoStamp"]


def test_removing_every_queue_deletes_collection(storage, clock, service):
    _seed(storage, clock, "Stale", clock() - timedelta(days=3))
    service.run_cleanup()
    assert storage.get(CREDENTIALS_KEY) is None


def test_report_dict(storage, clock, service):
    _seed(storage, clock, "Stale", clock() - timedelta(days=3))
    data = service.run_cleanup().to_dict()
    assert data["removed"] == ["Stale"]
    assert data["removedCount"] == 1
    assert data["remaining"] == 0


def test_scheduler_runs_on_start_and_stops(storage, clock, service):
    from web import cleanup_scheduler

    _seed(storage, clock, "Stale", clock() - timedelta(days=3))
    cleanup_scheduler.start_cleanup_scheduler(service, interval_hours=24, run_on_start=True)
    try:
        assert cleanup_scheduler.is_running()
        assert service.last_report is not None
        assert service.last_report.removed == ["Stale"]
        assert cleanup_scheduler.next_run() is not None
    finally:
        cleanup_scheduler.stop_cleanup_scheduler()

    assert not cleanup_scheduler.is_running()
    assert cleanup_scheduler.next_run() is None
