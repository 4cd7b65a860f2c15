import gc

import pytest

from broadcast import Affinity, InvalidArgumentError, Subscription, SubscriptionState


class Listener:
    def __init__(self):
        self.received = []

    def handle(self, payload, subscription):
        self.received.append(payload)


def test_bound_method_does_not_keep_owner_alive():
    listener = Listener()
    sub = Subscription("door", listener.handle)

    assert sub.owner is listener
    assert sub.is_alive()

    del listener
    gc.collect()

    assert sub.owner is None
    assert not sub.is_alive()
    assert not sub.is_active()
    # Nothing left to call once the instance is gone
    assert sub.deliver(None, "Opening") is False


def test_plain_function_is_ownerless_and_stays_alive():
    received = []
    sub = Subscription("door", lambda payload, s: received.append(payload))

    assert not sub.has_owner
    assert sub.is_alive()
    assert sub.deliver(None, "Opening") is True
    assert received == ["Opening"]


def test_explicit_owner_must_be_weak_referenceable():
    with pytest.raises(InvalidArgumentError):
        Subscription("door", lambda p, s: None, owner=42)


def test_builtin_bound_method_is_held_strongly():
    # dict instances cannot be weakly referenced
    received = {}
    sub = Subscription("door", received.__setitem__, pass_sender=True)

    assert not sub.has_owner
    sub.deliver("hq", {"state": "open"})
    assert received == {"hq": {"state": "open"}}


def test_unsubscribe_is_idempotent_and_releases_once():
    released = []
    sub = Subscription("door", lambda p, s: None, release=released.append)

    sub.unsubscribe()
    sub.unsubscribe()

    assert sub.state is SubscriptionState.UNSUBSCRIBED
    assert released == [sub]
    assert not sub.is_active()


def test_mark_unsubscribed_transitions_exactly_once():
    sub = Subscription("door", lambda p, s: None)
    assert sub.mark_unsubscribed() is True
    assert sub.mark_unsubscribed() is False


def test_condition_defaults_to_accept_all():
    sub = Subscription("door", lambda p, s: None)
    assert sub.accepts("anything")
    assert sub.accepts(None)


def test_condition_filters_payload():
    sub = Subscription("door", lambda p, s: None, condition=lambda payload: payload == "Opening")
    assert sub.accepts("Opening")
    assert not sub.accepts("Closed")


def test_callback_receives_payload_and_handle():
    seen = []
    sub = Subscription("door", lambda payload, s: seen.append((payload, s)))
    sub.deliver("hq", "Opening")
    assert seen == [("Opening", sub)]


def test_legacy_callback_receives_sender_and_userdata():
    seen = []
    sub = Subscription("door", lambda sender, userdata: seen.append((sender, userdata)), pass_sender=True)
    sub.deliver("hq", {"state": "open"})
    assert seen == [("hq", {"state": "open"})]


def test_affinity_accepts_plain_strings():
    sub = Subscription("door", lambda p, s: None, affinity="home")
    assert sub.affinity is Affinity.HOME
