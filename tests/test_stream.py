"""Tests for the event emitter and the buffered metrics stream."""

import threading
import time

from perf_stream.collector.base import Metric
from perf_stream.config import PerfStreamConfig
from perf_stream.stream import DATA_EVENT, EventEmitter, MetricsStream


def _metric(i: int) -> Metric:
    return Metric(name=f"cpu.user.{i}", value=float(i), timestamp=1000 + i, type="cpu",
                  metadata={"unit": "percent"})


def _metrics(n: int, start: int = 0) -> list[Metric]:
    return [_metric(i) for i in range(start, start + n)]


def _stream(threshold: int) -> tuple[MetricsStream, list[list[Metric]]]:
    stream = MetricsStream(PerfStreamConfig(metrics_buffer_size=threshold))
    received: list[list[Metric]] = []
    stream.on(DATA_EVENT, received.append)
    return stream, received


# ---------------------------------------------------------------------------
# EventEmitter
# ---------------------------------------------------------------------------

class TestEventEmitter:
    """Observer registry semantics."""

    def test_emit_calls_listeners_in_registration_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("data", lambda x: calls.append(("a", x)))
        emitter.on("data", lambda x: calls.append(("b", x)))
        assert emitter.emit("data", 1) is True
        assert calls == [("a", 1), ("b", 1)]

    def test_emit_without_listeners(self):
        emitter = EventEmitter()
        assert emitter.emit("data", 1) is False

    def test_events_are_independent(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("data", calls.append)
        emitter.emit("other", 1)
        assert calls == []
        assert emitter.listener_count("other") == 0

    def test_off_removes_listener(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("data", calls.append)
        emitter.off("data", calls.append)
        emitter.emit("data", 1)
        assert calls == []
        assert emitter.listener_count("data") == 0

    def test_off_unknown_listener_is_ignored(self):
        emitter = EventEmitter()
        emitter.off("data", print)
        emitter.on("data", len)
        emitter.off("data", print)
        assert emitter.listener_count("data") == 1

    def test_once_fires_a_single_time(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("data", calls.append)
        emitter.emit("data", 1)
        emitter.emit("data", 2)
        assert calls == [1]
        assert emitter.listener_count("data") == 0

    def test_off_removes_once_listener_by_original(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("data", calls.append)
        emitter.off("data", calls.append)
        assert emitter.listener_count("data") == 0
        emitter.emit("data", 1)
        assert calls == []

    def test_once_returns_original_listener(self):
        emitter = EventEmitter()
        assert emitter.once("data", len) is len

    def test_failing_listener_does_not_block_others(self, caplog):
        emitter = EventEmitter()
        calls = []

        def broken(_x):
            raise RuntimeError("boom")

        emitter.on("data", broken)
        emitter.on("data", calls.append)
        emitter.emit("data", 1)
        assert calls == [1]
        assert "Listener for 'data' failed" in caplog.text

    def test_listener_added_during_emit_waits_for_next_emit(self):
        emitter = EventEmitter()
        calls = []

        def register(_x):
            emitter.on("data", calls.append)

        emitter.once("data", register)
        emitter.emit("data", 1)
        assert calls == []
        emitter.emit("data", 2)
        assert calls == [2]

    def test_remove_all_listeners(self):
        emitter = EventEmitter()
        emitter.on("a", len)
        emitter.on("b", len)
        emitter.remove_all_listeners("a")
        assert emitter.listener_count("a") == 0
        assert emitter.listener_count("b") == 1
        emitter.remove_all_listeners()
        assert emitter.listener_count("b") == 0


# ---------------------------------------------------------------------------
# MetricsStream
# ---------------------------------------------------------------------------

class TestMetricsStream:
    """Buffering and flush protocol."""

    def test_push_below_threshold_buffers(self):
        stream, received = _stream(5)
        stream.push(_metrics(4))
        assert received == []
        assert len(stream) == 4
        assert stream.buffered == 4

    def test_push_reaching_threshold_flushes_once(self):
        stream, received = _stream(5)
        batch = _metrics(5)
        stream.push(batch)
        assert len(received) == 1
        assert received[0] == batch
        assert len(stream) == 0

    def test_push_over_threshold_flushes_everything(self):
        stream, received = _stream(3)
        stream.push(_metrics(2))
        stream.push(_metrics(4, start=2))
        assert len(received) == 1
        assert [m.value for m in received[0]] == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
        assert len(stream) == 0

    def test_threshold_of_one_or_less_flushes_every_push(self):
        for threshold in (1, 0, -3):
            stream, received = _stream(threshold)
            stream.push(_metrics(1))
            stream.push(_metrics(2, start=1))
            assert [len(b) for b in received] == [1, 2]

    def test_empty_push_with_zero_threshold_emits_nothing(self):
        stream, received = _stream(0)
        stream.push([])
        assert received == []

    def test_flush_empty_is_noop(self):
        stream, received = _stream(10)
        stream.flush()
        stream.flush()
        assert received == []
        assert len(stream) == 0

    def test_manual_flush(self):
        stream, received = _stream(10)
        stream.push(_metrics(3))
        stream.flush()
        assert len(received) == 1
        assert len(received[0]) == 3
        assert len(stream) == 0
        stream.flush()
        assert len(received) == 1

    def test_order_preserved_across_pushes(self):
        stream, received = _stream(10)
        m1, m2, m3 = _metrics(3)
        stream.push([m1, m2])
        stream.push([m3])
        stream.flush()
        assert received == [[m1, m2, m3]]

    def test_snapshot_isolation(self):
        stream, received = _stream(2)
        stream.push(_metrics(2))
        delivered = received[0]
        snapshot = list(delivered)
        stream.push(_metrics(1, start=10))
        assert delivered == snapshot
        assert len(delivered) == 2

    def test_clear_discards_silently(self):
        stream, received = _stream(10)
        stream.push(_metrics(3))
        stream.clear()
        stream.flush()
        assert received == []
        assert len(stream) == 0

    def test_all_listeners_get_the_same_batch(self):
        stream, first = _stream(10)
        second = []
        stream.on(DATA_EVENT, second.append)
        stream.push(_metrics(2))
        stream.flush()
        assert first[0] is second[0]

    def test_flush_without_listeners_drops_batch(self):
        stream = MetricsStream(PerfStreamConfig(metrics_buffer_size=10))
        stream.push(_metrics(2))
        stream.flush()
        assert len(stream) == 0
        late = []
        stream.on(DATA_EVENT, late.append)
        stream.flush()
        assert late == []

    def test_push_accepts_generators(self):
        stream, received = _stream(10)
        stream.push(m for m in _metrics(3))
        stream.flush()
        assert len(received[0]) == 3

    def test_listener_pushing_during_flush_is_kept(self):
        stream, received = _stream(2)
        extra = _metric(99)

        def refill(batch):
            if len(received) == 1:
                stream.push([extra])

        stream.on(DATA_EVENT, refill)
        stream.push(_metrics(2))
        assert len(received) == 1
        assert len(stream) == 1
        stream.flush()
        assert received[1] == [extra]

    def test_concurrent_pushes_lose_nothing(self):
        stream, received = _stream(7)

        def worker(offset):
            for i in range(100):
                stream.push([_metric(offset + i)])

        threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        stream.flush()
        assert sum(len(b) for b in received) == 400
        assert all(len(b) == 7 for b in received[:-1])

    def test_flushes_from_threads_deliver_in_order(self):
        stream = MetricsStream(PerfStreamConfig(metrics_buffer_size=100))
        delivered = []
        first_entered = threading.Event()

        def slow_listener(batch):
            if batch[0].value == 0.0:
                first_entered.set()
                time.sleep(0.05)
            delivered.append([m.value for m in batch])

        stream.on(DATA_EVENT, slow_listener)

        def first_flush():
            stream.push([_metric(0)])
            stream.flush()

        worker = threading.Thread(target=first_flush)
        worker.start()
        assert first_entered.wait(timeout=5)
        stream.push([_metric(1)])
        stream.flush()
        worker.join()

        assert delivered == [[0.0], [1.0]]
