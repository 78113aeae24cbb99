import logging

import pytest

from reconnecting_socket.observer import EventKind, ObserverChannel


def test_publish_reaches_only_matching_kind():
    channel = ObserverChannel("t")
    infos, states = [], []
    channel.subscribe("info", infos.append)
    channel.subscribe(EventKind.STATE, states.append)

    assert channel.publish(EventKind.INFO, "hello") == 1
    assert infos == ["hello"]
    assert states == []


def test_unsubscribe_callable_removes_listener():
    channel = ObserverChannel()
    seen = []
    unsubscribe = channel.subscribe("error", seen.append)

    assert unsubscribe() is True
    assert unsubscribe() is False
    channel.publish("error", RuntimeError("x"))
    assert seen == []
    assert channel.listener_count("error") == 0


def test_listener_may_unsubscribe_while_notified():
    channel = ObserverChannel()
    seen = []

    def once(payload):
        seen.append(payload)
        channel.unsubscribe("info", once)

    channel.subscribe("info", once)
    channel.subscribe("info", seen.append)
    channel.publish("info", "a")
    channel.publish("info", "b")
    assert seen == ["a", "a", "b"]


def test_raising_listener_is_logged_and_others_still_run(caplog):
    channel = ObserverChannel("t")
    seen = []

    def broken(payload):
        raise ValueError("boom")

    channel.subscribe("state", broken)
    channel.subscribe("state", seen.append)
    with caplog.at_level(logging.ERROR, logger="reconnecting_socket.observer"):
        assert channel.publish("state", "opened") == 1
    assert seen == ["opened"]
    assert "listener" in caplog.text


def test_unknown_kind_is_rejected():
    channel = ObserverChannel()
    with pytest.raises(ValueError):
        channel.subscribe("data", print)
    with pytest.raises(TypeError):
        channel.subscribe("info", "not callable")


def test_view_only_subscribes():
    channel = ObserverChannel()
    view = channel.view
    seen = []
    view.on("info", seen.append)
    assert view.listener_count("info") == 1
    channel.publish("info", "x")
    assert view.off("info", seen.append) is True
    assert seen == ["x"]
    assert not hasattr(view, "publish")
