import threading

import pytest

from tasksync.errors import ValidationError
from tasksync.services.outbox import MAX_RETRIES
from tasksync.services.sync_service import QueueAdmin, SyncService


@pytest.fixture
def admin(db, outbox):
    return QueueAdmin(db, outbox=outbox)


@pytest.fixture
def service(db, remote, outbox):
    return SyncService(db, remote=remote, outbox=outbox, pass_lock=threading.Lock())


def exhaust(outbox, item):
    for _ in range(MAX_RETRIES):
        outbox.mark_failed(item, "boom")


def test_retry_all_failed_resets_only_exhausted(admin, outbox):
    pending = outbox.enqueue("a", "create", {})
    outbox.mark_failed(pending, "once")
    failed = [outbox.enqueue(name, "create", {}) for name in ("b", "c")]
    for item in failed:
        exhaust(outbox, item)

    assert admin.retry_all_failed() == {"retried": 2, "failed": 0}

    for item in failed:
        assert item.retry_count == 0
        assert item.error_message is None
    assert pending.retry_count == 1
    assert pending.error_message == "once"


def test_retry_selected_skips_pending_ids(admin, outbox):
    pending = outbox.enqueue("a", "create", {})
    failed = outbox.enqueue("b", "create", {})
    exhaust(outbox, failed)

    result = admin.retry_selected([pending.id, failed.id])

    assert result == {"retried": 1, "failed": 1}
    assert failed.retry_count == 0


def test_retry_selected_unknown_ids(admin):
    assert admin.retry_selected([123, 456]) == {"retried": 0, "failed": 2}
    assert admin.retry_selected([]) == {"retried": 0, "failed": 0}


def test_retried_intent_is_picked_up_again(admin, outbox, service, remote):
    item = outbox.enqueue("a", "create", {})
    remote.failing_task_ids.add("a")
    for _ in range(MAX_RETRIES):
        service.sync()
    assert outbox.list_pending() == []

    remote.failing_task_ids.clear()
    admin.retry_selected([item.id])
    result = service.sync()

    assert result["synced_count"] == 1
    assert outbox.count() == 0


@pytest.mark.parametrize(
    "ids, all_failed",
    [(None, False), ([], False), ([1], True)],
)
def test_retry_requires_exactly_one_selector(admin, ids, all_failed):
    with pytest.raises(ValidationError):
        admin.retry(ids=ids, all_failed=all_failed)


def test_retry_dispatch(admin, outbox):
    failed = outbox.enqueue("b", "create", {})
    exhaust(outbox, failed)

    assert admin.retry(ids=[failed.id]) == {"retried": 1, "failed": 0}
    exhaust(outbox, failed)
    assert admin.retry(all_failed=True) == {"retried": 1, "failed": 0}


def test_list_queue(admin, outbox):
    outbox.enqueue("a", "create", {"title": "A"})
    failed = outbox.enqueue("b", "update", {})
    exhaust(outbox, failed)

    page = admin.list_queue(status="failed", limit=10, offset=0)

    assert page["total"] == 1
    assert page["limit"] == 10
    (row,) = page["items"]
    assert row["id"] == failed.id
    assert row["task_id"] == "b"
    assert row["retry_count"] == MAX_RETRIES
    assert row["error_message"] == "boom"

    assert admin.list_queue()["total"] == 2


def test_counts_and_clear(admin, outbox):
    outbox.enqueue("a", "create", {})
    failed = outbox.enqueue("b", "create", {})
    exhaust(outbox, failed)

    assert admin.counts() == {"pending": 1, "failed": 1, "total": 2}
    assert admin.clear_queue() == {"cleared": 2}
    assert admin.counts() == {"pending": 0, "failed": 0, "total": 0}


def test_batch_submission_reports_each_item(service, outbox):
    items = [
        {"task_id": "t1", "operation": "create", "data": {"title": "1"}},
        {"task_id": "t2", "operation": "update", "data": {"title": "2"}},
        {"task_id": "", "operation": "update", "data": {"title": "3"}},
        {"task_id": "t4", "operation": "delete", "data": None},
        {"task_id": "t5", "operation": "create", "data": {"title": "5"}},
    ]

    result = service.submit_batch(items)

    assert result["processed"] == 5
    assert result["successful"] == 4
    assert result["failed"] == 1
    failed = [r for r in result["results"] if r["status"] == "error"]
    assert len(failed) == 1
    assert failed[0]["index"] == 2
    assert failed[0]["task_id"] == ""
    assert "Invalid task id" in failed[0]["error"]
    assert outbox.count() == 4


def test_batch_rejects_non_list(service):
    with pytest.raises(ValidationError):
        service.submit_batch({"task_id": "t1"})


def test_batch_item_of_wrong_shape(service):
    result = service.submit_batch(["not an object", {"task_id": "t1", "operation": "create"}])

    assert result["successful"] == 1
    assert result["results"][0]["status"] == "error"


def test_retry_selected_counts_repeated_ids(admin, outbox):
    failed = outbox.enqueue("b", "create", {})
    exhaust(outbox, failed)

    assert admin.retry_selected([failed.id, failed.id]) == {"retried": 1, "failed": 1}
