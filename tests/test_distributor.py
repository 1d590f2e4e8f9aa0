"""Tests for the Distributor Controller"""

import pytest

from qticket.auth.handshake import AuthHandshake
from qticket.services.distributor import DistributorController
from qticket.services.display_reader import DisplayReader
from qticket.services.queue_state_store import QueueStateStore
from qticket.storage.base import CREDENTIALS_KEY, SESSION_KEY, MemoryStorage, queue_state_key
from qticket.utils.exceptions import DocumentSchemaError


class BrokenWriteStorage(MemoryStorage):
    """Storage whose writes fail while ``broken`` is set"""

    broken = False

    def set(self, key, document):
        if self.broken:
            raise DocumentSchemaError(f"Cannot write {key}")
        super().set(key, document)


@pytest.fixture
def handshake(storage, clock):
    return AuthHandshake(storage, clock=clock)


def _controller(storage, clock, handshake, name="Clinic-A", password="abcd1234"):
    handshake.login(name, password)
    return DistributorController(
        name,
        QueueStateStore(storage, name, clock),
        handshake.credentials,
        handshake.sessions,
    )


def test_clinic_scenario(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)

    notices = [controller.issue_next() for _ in range(3)]
    assert [n.ticket.number for n in notices] == [1, 2, 3]
    assert notices[-1].message == "Queue 3 generated"
    assert controller.outstanding == 3

    notice = controller.call_next()
    assert notice.message == "Calling Queue 1"
    assert controller.calling == 1
    assert controller.outstanding == 2

    doc = controller.state_store.load()
    assert doc.find_ticket(1).served is True
    assert doc.outstanding == 2

    view = DisplayReader(controller.state_store, viewer_number=3, clock=clock).refresh()
    assert view.viewer.ahead == 2
    assert view.viewer.message == "2 ahead"


def test_issued_numbers_strictly_increase(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    for _ in range(5):
        controller.issue_next()
        clock.advance(seconds=1)
    controller.call_next()
    controller.issue_next()

    numbers = [t.number for t in controller.state_store.load().tickets]
    assert numbers == sorted(set(numbers)) == [1, 2, 3, 4, 5, 6]


def test_call_with_nothing_waiting_is_a_no_op(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    before = storage.get(queue_state_key("Clinic-A"))

    notice = controller.call_next()
    assert notice.message == "No more queues to call"
    assert controller.calling == 0
    assert storage.get(queue_state_key("Clinic-A")) == before


def test_call_all_then_no_op(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller.issue_next()
    controller.call_next()
    assert controller.call_next().message == "No more queues to call"
    assert controller.calling == 1
    assert controller.outstanding == 0


def test_outstanding_matches_unserved_count(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    for _ in range(4):
        controller.issue_next()
    controller.call_next()
    controller.call_next()

    doc = controller.state_store.load()
    assert doc.outstanding == sum(1 for t in doc.tickets if not t.served) == 2
    assert 0 <= doc.calling <= doc.next_issued


def test_issue_while_busy_is_refused(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller._issuing.acquire()
    try:
        notice = controller.issue_next()
    finally:
        controller._issuing.release()

    assert notice.level == "warning"
    assert notice.ticket is None
    assert controller.state_store.load().tickets == []


def test_call_after_external_reset_keeps_memory_value(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller.issue_next()
    controller.issue_next()
    QueueStateStore(storage, "Clinic-A", clock).reset()

    notice = controller.call_next()
    assert notice.ticket is None
    assert controller.calling == 1
    assert controller.state_store.load().calling == 0

    controller.reload()
    assert controller.calling == 0


def test_reset_declined_changes_nothing(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller.issue_next()
    prompts = []

    notice = controller.reset_all(lambda prompt: prompts.append(prompt) or False)
    assert prompts and "reset all queues" in prompts[0]
    assert notice.message == "Reset cancelled"
    assert controller.state_store.load().next_issued == 1


def test_reset_is_idempotent(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller.issue_next()
    controller.call_next()

    controller.reset_all(lambda _: True)
    first = storage.get(queue_state_key("Clinic-A"))
    controller.reset_all(lambda _: True)
    second = storage.get(queue_state_key("Clinic-A"))

    assert first == second
    assert (first["currentQueue"], first["callingQueue"], first["totalQueues"], first["queues"]) == (0, 0, 0, [])
    assert (controller.next_issued, controller.calling, controller.outstanding) == (0, 0, 0)


def _summary(doc):
    return (
        doc["currentQueue"],
        doc["callingQueue"],
        doc["totalQueues"],
        [(t["number"], t["served"]) for t in doc["queues"]],
    )


def test_reset_then_issue_matches_fresh_queue(storage, clock, handshake):
    used = _controller(storage, clock, handshake)
    for _ in range(3):
        used.issue_next()
    used.call_next()
    used.reset_all(lambda _: True)
    used.issue_next()

    fresh = _controller(storage, clock, handshake, name="Clinic-B", password="efgh5678")
    fresh.issue_next()

    after_reset = storage.get(queue_state_key("Clinic-A"))
    assert _summary(after_reset) == _summary(storage.get(queue_state_key("Clinic-B")))
    assert _summary(after_reset) == (1, 0, 1, [(1, False)])


def test_store_failure_becomes_error_notice(clock):
    storage = BrokenWriteStorage()
    controller = _controller(storage, clock, AuthHandshake(storage, clock=clock))
    controller.issue_next()

    storage.broken = True
    notice = controller.issue_next()
    assert (notice.message, notice.level, notice.ticket) == ("Failed to generate queue", "error", None)
    notice = controller.reset_all(lambda _: True)
    assert (notice.message, notice.level) == ("Failed to reset queues", "error")
    assert controller.next_issued == 1

    storage.broken = False
    assert controller.issue_next().message == "Queue 2 generated"


def test_delete_only_queue_removes_collection(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    controller.issue_next()

    notice = controller.delete_queue(lambda _: True)
    assert notice.redirect == "login"
    assert storage.get(CREDENTIALS_KEY) is None
    assert storage.get(queue_state_key("Clinic-A")) is None
    assert storage.get(SESSION_KEY) is None


def test_delete_keeps_other_queues(storage, clock, handshake):
    handshake.login("Clinic-B", "efgh5678")
    controller = _controller(storage, clock, handshake)

    controller.delete_queue(lambda _: True)
    assert list(storage.get(CREDENTIALS_KEY)["queues"]) == ["Clinic-B"]
    assert storage.get(queue_state_key("Clinic-B")) is not None


def test_delete_declined(storage, clock, handshake):
    controller = _controller(storage, clock, handshake)
    notice = controller.delete_queue(lambda _: False)
    assert notice.redirect is None
    assert handshake.credentials.lookup("Clinic-A") is not None
