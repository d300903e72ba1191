"""
Relay queue between the agent's tools and the sandboxed client.
"""
from app.services.relay_queue import RelayQueue, RequestKind, RequestStatus


def test_enqueue_creates_pending_record(relay):
    request_id = relay.enqueue(RequestKind.OPEN_TAB, {"url": "https://example.com"})
    request = relay.get(request_id)
    assert request.status is RequestStatus.PENDING
    assert request.payload == {"url": "https://example.com"}
    assert request.result is None and request.error is None


def test_ids_are_unique_and_increasing(relay):
    ids = [int(relay.enqueue(RequestKind.SCREENSHOT)) for _ in range(50)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 50


def test_complete_unknown_id_is_a_noop(relay):
    assert relay.complete("does-not-exist", result={"filename": "x.png"}) is False
    assert len(relay) == 0


def test_take_after_complete_returns_record_exactly_once(relay):
    request_id = relay.enqueue(RequestKind.SCREENSHOT)
    assert relay.complete(request_id, result={"filename": "shot.png"}) is True

    taken = relay.take(request_id)
    assert taken.is_completed
    assert taken.result == {"filename": "shot.png"}
    assert relay.take(request_id) is None
    assert relay.get(request_id) is None


def test_take_pending_leaves_record_in_place(relay):
    request_id = relay.enqueue(RequestKind.OPEN_TAB, {"url": "https://example.com"})
    assert relay.take(request_id) is None
    assert relay.get(request_id) is not None


def test_second_complete_does_not_overwrite(relay):
    request_id = relay.enqueue(RequestKind.SCREENSHOT)
    relay.complete(request_id, result={"filename": "first.png"})
    assert relay.complete(request_id, result={"filename": "second.png"}) is False
    assert relay.get(request_id).result == {"filename": "first.png"}


def test_complete_with_error(relay):
    request_id = relay.enqueue(RequestKind.SCREENSHOT)
    relay.complete(request_id, error="capture failed")
    request = relay.take(request_id)
    assert request.error == "capture failed"
    assert request.result is None


def test_discard_removes_regardless_of_status(relay):
    request_id = relay.enqueue(RequestKind.SCREENSHOT)
    assert relay.discard(request_id).id == request_id
    assert relay.discard(request_id) is None


def test_poll_returns_snapshots(relay):
    request_id = relay.enqueue(RequestKind.OPEN_TAB, {"url": "https://a.example"})
    snapshot = relay.poll()[0]
    snapshot.payload["url"] = "changed"
    assert relay.get(request_id).payload["url"] == "https://a.example"
    assert snapshot.to_dict()["kind"] == "open-tab"


def test_stale_completed_records_are_swept_on_enqueue():
    queue = RelayQueue(completed_ttl=60)
    stale_id = queue.enqueue(RequestKind.OPEN_TAB, {"url": "https://a.example"})
    pending_id = queue.enqueue(RequestKind.OPEN_TAB, {"url": "https://b.example"})
    queue.complete(stale_id)
    queue.get(stale_id).completed_at -= 120

    queue.enqueue(RequestKind.SCREENSHOT)
    assert queue.get(stale_id) is None
    assert queue.get(pending_id) is not None


def test_unclaimed_pending_records_expire_on_enqueue():
    queue = RelayQueue(completed_ttl=60, pending_ttl=300)
    old_id = queue.enqueue(RequestKind.OPEN_TAB, {"url": "https://old.example"})
    queue.get(old_id).created_at -= 10 ** 6
    fresh_id = queue.enqueue(RequestKind.OPEN_TAB, {"url": "https://fresh.example"})

    queue.enqueue(RequestKind.SCREENSHOT)

    assert queue.get(old_id) is None
    assert queue.get(fresh_id) is not None
    assert old_id not in [r.id for r in queue.poll()]
    assert len(queue) == 2


def test_pending_ttl_zero_keeps_pending_records():
    queue = RelayQueue(completed_ttl=0, pending_ttl=0)
    old_id = queue.enqueue(RequestKind.OPEN_TAB, {"url": "https://old.example"})
    queue.get(old_id).created_at -= 10 ** 6

    queue.enqueue(RequestKind.SCREENSHOT)
    assert queue.get(old_id) is not None
