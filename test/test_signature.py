import inspect
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from snaplog.capture.signature import SignatureComputer, StackFrame, walk_stack


def frames(*names):
    return [StackFrame(module, qualname, lineno, f"/src/{module}.py") for module, qualname, lineno in names]


class TestSignatureComputer:
    """Test suite for stack signature computation."""

    def setup_method(self):
        self.computer = SignatureComputer()
        self.stack = frames(
            ("app.views", "checkout", 42),
            ("app.routing", "dispatch", 10),
            ("app.main", "handle", 7),
        )

    def test_same_frames_same_signature(self):
        first = self.computer.compute(self.stack)
        second = self.computer.compute(list(self.stack))
        assert first.signature == second.signature
        assert int(first.signature, 16) >= 0

    def test_line_change_changes_signature(self):
        moved = [StackFrame("app.views", "checkout", 43)] + self.stack[1:]
        assert self.computer.compute(moved).signature != self.computer.compute(self.stack).signature

    def test_leading_internal_frames_skipped(self):
        wrapped = frames(
            ("snaplog.pipeline", "CapturePipeline.capture", 100),
            ("snaplog.pipeline", "CapturePipeline.error", 200),
        ) + self.stack
        result = self.computer.compute(wrapped)
        assert result.signature == self.computer.compute(self.stack).signature
        assert result.listing["0"] == "app.views.checkout #42"

    def test_later_internal_frames_kept(self):
        stack = self.stack + frames(("snaplog.perf", "wrapper", 5))
        result = self.computer.compute(stack)
        assert len(result.frames) == 4
        assert result.listing["3"] == "snaplog.perf.wrapper #5"

    def test_stdlib_frames_do_not_contribute(self):
        with_runtime = self.stack[:1] + frames(("asyncio.events", "Handle._run", 80)) + self.stack[1:]
        result = self.computer.compute(with_runtime)
        assert result.signature == self.computer.compute(self.stack).signature
        assert "asyncio.events.Handle._run #80" in result.listing.values()

    def test_only_first_frames_contribute(self):
        base = frames(*[("app.mod", f"f{i}", i) for i in range(4)])
        deeper = base + frames(("app.mod", "outer", 99))
        other_deeper = base + frames(("app.mod", "outer", 100))
        assert self.computer.compute(deeper).signature == self.computer.compute(other_deeper).signature

    def test_frame_count_configurable(self):
        computer = SignatureComputer(frame_count=1)
        changed_caller = self.stack[:1] + frames(("app.other", "x", 1))
        assert computer.compute(changed_caller).signature == computer.compute(self.stack).signature

    def test_listing_with_file_paths(self):
        computer = SignatureComputer(include_file_paths=True)
        result = computer.compute(self.stack)
        assert result.listing["0"] == "app.views.checkout #42 @ /src/app.views.py"

    def test_empty_stack(self):
        result = self.computer.compute([])
        assert result.signature == "0"
        assert result.listing == {}


class TestWalkStack:
    """Test suite for live frame walking."""

    def test_walks_outward_from_current_frame(self):
        stack = list(walk_stack(inspect.currentframe()))
        assert stack[0].qualname == "TestWalkStack.test_walks_outward_from_current_frame"
        assert stack[0].module == __name__
        assert len(stack) > 1
