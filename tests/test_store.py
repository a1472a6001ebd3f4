"""Tests for the message store."""

import threading

from sigsync.server.store import MessageStore


def test_initial_state():
    store = MessageStore("Hello World")
    state = store.get()
    assert state.message == "Hello World"
    assert state.version == 0
    assert state.signature is None


def test_set_bumps_version():
    store = MessageStore("x")
    assert store.set("a").version == 1
    assert store.set("b").version == 2
    assert store.get().message == "b"


def test_compare_and_set():
    store = MessageStore("x")
    assert store.compare_and_set(0, "a").message == "a"
    assert store.compare_and_set(0, "stale") is None
    assert store.get().message == "a"


def test_record_signature_only_for_current_version():
    store = MessageStore("x")
    store.record_signature(0, b"sig0")
    assert store.get().signature == b"sig0"
    store.set("y")
    assert store.get().signature is None
    store.record_signature(0, b"old")
    assert store.get().signature is None


def test_concurrent_writes_serialize():
    store = MessageStore("x")
    threads = [threading.Thread(target=store.set, args=(str(i),)) for i in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.get().version == 50
