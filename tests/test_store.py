"""
Latest-Value Store Tests
========================

Single-slot, test-and-clear semantics of LatestValueStore.
"""

import threading

import pytest

from zmq_rest_bridge.models.frame import Frame
from zmq_rest_bridge.store import LatestValueStore


def make_frame(i: int) -> Frame:
    return Frame(target=f"sender-{i}", width=i, height=i * 2, payload=f"payload-{i}".encode())


class TestReadAndClear:
    """Tests for the read path."""

    def test_empty_store_has_nothing_to_read(self):
        store = LatestValueStore()
        assert store.read_and_clear() == (None, False)

    def test_last_write_wins(self):
        store = LatestValueStore()
        for i in range(10):
            store.write(make_frame(i))

        frame, was_unread = store.read_and_clear()
        assert was_unread is True
        assert frame == make_frame(9)

    def test_second_read_returns_nothing(self):
        store = LatestValueStore()
        store.write(make_frame(1))

        store.read_and_clear()
        assert store.read_and_clear() == (None, False)

    def test_repeated_reads_stay_empty(self):
        store = LatestValueStore()
        store.write(make_frame(1))
        store.read_and_clear()

        for _ in range(5):
            assert store.read_and_clear() == (None, False)

    def test_write_after_read_is_unread_again(self):
        store = LatestValueStore()
        store.write(make_frame(1))
        store.read_and_clear()
        store.write(make_frame(2))

        frame, was_unread = store.read_and_clear()
        assert was_unread is True
        assert frame.target == "sender-2"

    def test_round_trip_keeps_fields(self):
        store = LatestValueStore()
        payload = bytes(range(256))
        store.write(Frame(target="alice", width=640, height=480, payload=payload))

        frame, _ = store.read_and_clear()
        assert frame.target == "alice"
        assert frame.width == 640
        assert frame.height == 480
        assert frame.payload == payload

    def test_peek_does_not_consume(self):
        store = LatestValueStore()
        store.write(make_frame(3))

        assert store.peek() == make_frame(3)
        assert store.unread is True


class TestMetrics:
    """Tests for store counters."""

    def test_counts_writes_reads_and_overwrites(self):
        store = LatestValueStore()
        store.write(make_frame(1))
        store.write(make_frame(2))
        store.read_and_clear()
        store.read_and_clear()

        metrics = store.metrics()
        assert metrics["frames_written"] == 2
        assert metrics["frames_read"] == 1
        assert metrics["frames_overwritten"] == 1
        assert metrics["unread"] is False


class TestConcurrency:
    """Concurrent writers and readers on real threads."""

    def test_unread_reads_never_exceed_writes(self):
        store = LatestValueStore()
        writers, per_writer, readers = 4, 500, 4
        written = {
            make_frame(w * per_writer + i).payload
            for w in range(writers)
            for i in range(per_writer)
        }
        results = []
        results_lock = threading.Lock()
        done = threading.Event()

        def write(w: int) -> None:
            for i in range(per_writer):
                store.write(make_frame(w * per_writer + i))

        def read() -> None:
            local = []
            while not done.is_set():
                frame, was_unread = store.read_and_clear()
                if was_unread:
                    local.append(frame)
            with results_lock:
                results.extend(local)

        reader_threads = [threading.Thread(target=read) for _ in range(readers)]
        writer_threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
        for t in reader_threads + writer_threads:
            t.start()
        for t in writer_threads:
            t.join()
        done.set()
        for t in reader_threads:
            t.join()

        # Anything still unread after the readers stopped
        frame, was_unread = store.read_and_clear()
        if was_unread:
            results.append(frame)

        assert 1 <= len(results) <= writers * per_writer
        for frame in results:
            assert frame.payload in written
            # No torn frames: every field belongs to the same write
            i = frame.width
            assert frame == make_frame(i)


class TestFrame:
    """Tests for the Frame model."""

    def test_defaults(self):
        frame = Frame()
        assert frame.target == "nobody"
        assert frame.width == 0
        assert frame.height == 0
        assert frame.payload == b""

    def test_negative_dimensions_rejected(self):
        with pytest.raises(ValueError):
            Frame(width=-1)

    def test_repr_hides_payload(self):
        frame = Frame(target="bob", width=2, height=3, payload=b"x" * 1000)
        assert "xxxx" not in repr(frame)
        assert "bytes=1000" in repr(frame)
