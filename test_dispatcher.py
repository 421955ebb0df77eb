# test_dispatcher.py
import threading

import cv2
import numpy as np

from integral_batch.dispatcher import INLINE, MISSING, THREADED, WorkDispatcher, WorkUnit, process_image
from integral_batch.thread_counter import ThreadCounter


def write_image(path, pixels):
    cv2.imwrite(str(path), np.array(pixels, dtype=np.uint8))
    return str(path)


def test_missing_path_skips_gate(tmp_path):
    gate = ThreadCounter(capacity=1)
    calls = []
    dispatcher = WorkDispatcher(gate, handler=calls.append)

    status = dispatcher.submit(str(tmp_path / "nope.png"))

    assert status == MISSING
    assert calls == []
    assert gate.outstanding == 0


def test_denied_unit_runs_inline(tmp_path):
    path = write_image(tmp_path / "a.png", [[1]])
    gate = ThreadCounter()  # capacity 0 -> never admits
    seen = []
    dispatcher = WorkDispatcher(gate, handler=lambda unit: seen.append((unit.path, threading.current_thread())))

    assert dispatcher.submit(path) == INLINE
    assert seen == [(path, threading.current_thread())]
    assert not gate.has_outstanding_work()


def test_admitted_unit_runs_on_worker_and_releases(tmp_path):
    path = write_image(tmp_path / "a.png", [[1]])
    gate = ThreadCounter(capacity=1)
    seen = []
    dispatcher = WorkDispatcher(gate, handler=lambda unit: seen.append(threading.current_thread()))

    assert dispatcher.submit(path) == THREADED
    dispatcher.await_all_outstanding()

    assert len(seen) == 1
    assert seen[0] is not threading.current_thread()
    assert gate.outstanding == 0


def test_full_gate_falls_back_to_inline(tmp_path):
    slow = write_image(tmp_path / "slow.png", [[1]])
    fast = write_image(tmp_path / "fast.png", [[2]])
    gate = ThreadCounter(capacity=1)
    started = threading.Event()
    unblock = threading.Event()
    ran_inline = []

    def handler(unit):
        if unit.path == slow:
            started.set()
            unblock.wait(timeout=5)
        else:
            ran_inline.append(threading.current_thread())

    dispatcher = WorkDispatcher(gate, handler=handler)

    assert dispatcher.submit(slow) == THREADED
    assert started.wait(timeout=5)
    assert dispatcher.submit(fast) == INLINE
    assert ran_inline == [threading.current_thread()]
    assert gate.has_outstanding_work()

    unblock.set()
    dispatcher.await_all_outstanding()
    assert not gate.has_outstanding_work()


def test_failing_worker_still_releases(tmp_path, capsys):
    path = write_image(tmp_path / "a.png", [[1]])
    gate = ThreadCounter(capacity=2)

    def handler(unit):
        raise RuntimeError("boom")

    dispatcher = WorkDispatcher(gate, handler=handler, poll_interval=0.001)

    assert dispatcher.submit(path) == THREADED
    assert dispatcher.submit(path) == THREADED
    dispatcher.await_all_outstanding()

    assert gate.outstanding == 0
    assert "boom" in capsys.readouterr().err


def test_failing_inline_unit_does_not_propagate(tmp_path, capsys):
    path = write_image(tmp_path / "a.png", [[1]])

    def handler(unit):
        raise OSError("disk full")

    dispatcher = WorkDispatcher(ThreadCounter(), handler=handler)

    assert dispatcher.submit(path) == INLINE
    assert "disk full" in capsys.readouterr().err


def test_process_image_writes_integral(tmp_path):
    path = write_image(tmp_path / "grey.png", [[1, 2], [3, 4]])

    output_path = process_image(WorkUnit(path))

    assert output_path == path + ".integral"
    with open(output_path) as f:
        assert f.read() == "1.0 3.0\n4.0 10.0\n\n"


def test_process_image_with_plot(tmp_path):
    path = write_image(tmp_path / "grey.png", [[1, 2], [3, 4]])

    process_image(WorkUnit(path), suffix=".sat", plot=True)

    assert (tmp_path / "grey.png.sat").exists()
    assert (tmp_path / "grey.png.sat.png").exists()


def test_bad_images_do_not_stop_the_batch(tmp_path, capsys):
    good = [write_image(tmp_path / f"img{i}.png", [[i, 1], [1, 1]]) for i in range(4)]
    corrupt = tmp_path / "corrupt.png"
    corrupt.write_bytes(b"garbage")
    missing = str(tmp_path / "missing.png")

    gate = ThreadCounter(capacity=2)
    dispatcher = WorkDispatcher(gate, poll_interval=0.001)
    statuses = [dispatcher.submit(p) for p in [missing, str(corrupt)] + good]
    dispatcher.await_all_outstanding()

    assert statuses[0] == MISSING
    assert gate.outstanding == 0
    assert not (tmp_path / "corrupt.png.integral").exists()
    for i, path in enumerate(good):
        with open(path + ".integral") as f:
            assert f.read() == f"{float(i):.1f} {i + 1:.1f}\n{i + 1:.1f} {i + 3:.1f}\n\n"

    err = capsys.readouterr().err
    assert "doesn't exist" in err
    assert "Can't read image" in err


def test_work_unit_repr():
    assert repr(WorkUnit("x.png")) == "WorkUnit('x.png')"


def test_worker_start_failure_runs_inline(tmp_path, monkeypatch, capsys):
    path = write_image(tmp_path / "a.png", [[1]])
    gate = ThreadCounter(capacity=1)
    seen = []

    def refuse_start(self):
        raise RuntimeError("can't start new thread")

    monkeypatch.setattr(threading.Thread, "start", refuse_start)
    dispatcher = WorkDispatcher(gate, handler=lambda unit: seen.append(threading.current_thread()))

    assert dispatcher.submit(path) == INLINE
    assert seen == [threading.current_thread()]
    assert gate.outstanding == 0
    assert "running inline" in capsys.readouterr().err
