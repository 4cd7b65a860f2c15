import threading

import pytest
from pydantic import BaseModel

from broadcast import BroadcastMessage, Channel, InvalidArgumentError, MessageBase, NotificationCenter


class SimpleContent(BaseModel):
    name: str = ""


@pytest.fixture
def center():
    c = NotificationCenter()
    yield c
    c.shutdown()


def test_broadcast_message_positional_and_keyword_forms():
    positional = BroadcastMessage[str]("Test")
    keyword = BroadcastMessage[str](content="Test")

    assert positional.content == keyword.content == "Test"
    assert positional.get_content() == "Test"
    assert type(positional) is BroadcastMessage[str]
    assert isinstance(positional, MessageBase)


def test_publish_message_invokes_typed_callback(center):
    called = []
    center.subscribe(
        BroadcastMessage[SimpleContent],
        lambda msg, sub: called.append(msg.content.name == "Test"),
    )

    center.publish_message(BroadcastMessage[SimpleContent](SimpleContent(name="Test")))

    assert called == [True]


def test_handler_receives_only_its_message_type(center):
    seen_types = []
    center.subscribe(BroadcastMessage[SimpleContent], lambda msg, sub: seen_types.append(("content", type(msg.content))))
    center.subscribe(BroadcastMessage[str], lambda msg, sub: seen_types.append(("string", type(msg.content))))

    center.publish_message(BroadcastMessage[str]("Test"))
    center.publish_message(BroadcastMessage[SimpleContent](SimpleContent()))

    assert seen_types == [("string", str), ("content", SimpleContent)]


def test_typed_handler_can_unsubscribe(center):
    call_count = []
    subscription = center.subscribe(BroadcastMessage[SimpleContent], lambda msg, sub: call_count.append(1))

    center.publish_message(BroadcastMessage[SimpleContent](SimpleContent()))
    subscription.unsubscribe()
    center.publish_message(BroadcastMessage[SimpleContent](SimpleContent()))

    assert len(call_count) == 1


def test_channel_subscribe_and_publish(center):
    greetings = center.channel(BroadcastMessage[str])
    received = []
    greetings.subscribe(lambda msg, sub: received.append(msg.content), condition=lambda msg: msg.content != "skip")

    assert greetings.publish(BroadcastMessage[str]("hello")) == 1
    assert greetings.publish(BroadcastMessage[str]("skip")) == 0

    assert received == ["hello"]
    assert greetings.subscriber_count() == 1
    assert isinstance(greetings, Channel)


def test_channel_rejects_other_message_types(center):
    greetings = center.channel(BroadcastMessage[str])
    with pytest.raises(InvalidArgumentError):
        greetings.publish(BroadcastMessage[SimpleContent](SimpleContent()))
    with pytest.raises(InvalidArgumentError):
        greetings.publish(None)


def test_channel_requires_a_type(center):
    with pytest.raises(InvalidArgumentError):
        center.channel("not-a-type")


def test_channel_unsubscribe_all_only_touches_its_topic(center):
    strings = center.channel(BroadcastMessage[str])
    contents = center.channel(BroadcastMessage[SimpleContent])
    strings.subscribe(lambda msg, sub: None)
    contents.subscribe(lambda msg, sub: None)

    assert strings.unsubscribe_all() == 1
    assert strings.subscriber_count() == 0
    assert contents.subscriber_count() == 1


def test_channel_publish_async_delivers(center):
    done = threading.Event()
    channel = center.channel(BroadcastMessage[str])
    channel.subscribe(lambda msg, sub: done.set())

    channel.publish_async(BroadcastMessage[str]("later"))

    assert done.wait(5)
