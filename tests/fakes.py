"""Fakes shared by the test modules."""

from types import SimpleNamespace

from observer.session import Frame, Observation


class ImmediateExecutor:
    """Runs submitted work inline."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        fn(*args, **kwargs)


class DeferredExecutor:
    """Queues submitted work until run() is called, to model overlapping ticks."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        self.pending.append((fn, args, kwargs))

    def run(self, index=0):
        fn, args, kwargs = self.pending.pop(index)
        fn(*args, **kwargs)


class FakeSource:
    """Yields the queued frames, then None."""

    def __init__(self, frames=None):
        self.frames = list(frames or [])
        self.closed = False

    def get_current_frame(self):
        if not self.frames:
            return None
        return self.frames.pop(0)

    def close(self):
        self.closed = True


class ScriptedAnalysis:
    """Returns or raises the scripted outcome for each call, in order."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def analyze(self, frame):
        self.calls.append(frame)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return make_observation(outcome, frame_id=frame.frame_id)


def make_frame(frame_id="frame-1", data=b"\xff\xd8jpeg\xff\xd9"):
    return Frame(frame_id=frame_id, data=data, captured_at="2026-01-01T00:00:00+00:00")


def make_observation(description, frame_id="frame-1"):
    return Observation(
        frame_id=frame_id,
        timestamp="2026-01-01T00:00:01+00:00",
        description=description,
        captured_at="2026-01-01T00:00:00+00:00",
        processing_time_ms=12.5,
    )


def text_reply(*texts):
    """Build a Messages API-like reply with one text block per argument."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=t) for t in texts])


class GatedAnalysis:
    """
    Analysis whose latency is scripted per frame.

    ``script`` maps frame ids to ``(text, gate)``; when ``gate`` is a
    threading.Event the call blocks until it is set.
    """

    def __init__(self, script, timeout=5):
        self.script = dict(script)
        self.timeout = timeout

    def analyze(self, frame):
        text, gate = self.script[frame.frame_id]
        if gate is not None and not gate.wait(self.timeout):
            raise TimeoutError(f"gate for {frame.frame_id} never opened")
        return make_observation(text, frame_id=frame.frame_id)
