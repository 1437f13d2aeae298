"""
Stack Signature Computation.

A signature is a short hex fingerprint of the top of the call stack at
the moment of capture. Events raised from the same call site share a
signature, which is what sinks group on. Only the first few frames that
belong to application code contribute, so line-number noise deep in the
stack (framework dispatch, test runners) does not split groups.
"""

from __future__ import annotations

import sys
import zlib
from dataclasses import dataclass, field
from types import FrameType
from typing import Dict, FrozenSet, Iterable, Iterator, List, NamedTuple, Optional

INTERNAL_MODULES = frozenset({
    "snaplog.pipeline",
    "snaplog.perf",
    "snaplog.default",
})

RUNTIME_NAMESPACES = frozenset(sys.stdlib_module_names) | {"builtins"}

SIGNATURE_FRAME_COUNT = 4


class StackFrame(NamedTuple):
    """One frame of a captured call stack."""

    module: str
    qualname: str
    lineno: int
    filename: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.qualname}" if self.module else self.qualname


@dataclass
class StackSignature:
    """
    Result of a signature computation.

    Attributes:
        signature: 32-bit fingerprint as lowercase hex
        listing: Frame index ("0", "1", ...) -> printable frame line
        frames: Frames that remained after skipping capture internals
    """
    signature: str
    listing: Dict[str, str] = field(default_factory=dict)
    frames: List[StackFrame] = field(default_factory=list)


def walk_stack(frame: Optional[FrameType]) -> Iterator[StackFrame]:
    """
    Yield StackFrames from a live frame outward to the outermost caller.

    Frame objects are not retained; only names and line numbers are.
    """
    while frame is not None:
        code = frame.f_code
        module = frame.f_globals.get("__name__", "") or ""
        qualname = getattr(code, "co_qualname", code.co_name)
        yield StackFrame(module, qualname, frame.f_lineno, code.co_filename)
        frame = frame.f_back


class SignatureComputer:
    """
    Derives a dedup signature from an ordered sequence of stack frames.

    The algorithm only needs (qualified name, line number) pairs, so it
    can be driven with synthetic frames in tests:

        computer = SignatureComputer()
        result = computer.compute([
            StackFrame("app.views", "checkout", 42),
            StackFrame("app.main", "handle", 7),
        ])
        result.signature  # e.g. "5f1c03a2"

    Args:
        frame_count: Number of application frames hashed into the signature
        include_file_paths: Append the source file to each listing line
        internal_modules: Modules whose leading frames are skipped
        runtime_namespaces: Top-level module names that never contribute
    """

    def __init__(
        self,
        frame_count: int = SIGNATURE_FRAME_COUNT,
        include_file_paths: bool = False,
        internal_modules: FrozenSet[str] = INTERNAL_MODULES,
        runtime_namespaces: FrozenSet[str] = RUNTIME_NAMESPACES,
    ):
        self.frame_count = frame_count
        self.include_file_paths = include_file_paths
        self.internal_modules = internal_modules
        self.runtime_namespaces = runtime_namespaces

    def is_runtime_frame(self, frame: StackFrame) -> bool:
        """Check if a frame belongs to the interpreter or standard library."""
        if not frame.module:
            return True
        top_level = frame.module.split(".", 1)[0]
        return top_level in self.runtime_namespaces

    def frame_key(self, frame: StackFrame) -> str:
        return f"{frame.qualified_name}#{frame.lineno}"

    def frame_line(self, frame: StackFrame) -> str:
        if self.include_file_paths:
            return f"{frame.qualified_name} #{frame.lineno} @ {frame.filename}"
        return f"{frame.qualified_name} #{frame.lineno}"

    def compute(self, frames: Iterable[StackFrame]) -> StackSignature:
        """
        Compute the signature and frame listing.

        Args:
            frames: Frames ordered innermost first

        Returns:
            StackSignature with the hex signature and the listing
        """
        skipping = True
        hashed = 0
        accumulator = 0
        kept: List[StackFrame] = []
        listing: Dict[str, str] = {}

        for frame in frames:
            if skipping:
                if frame.module in self.internal_modules:
                    continue
                skipping = False

            if hashed < self.frame_count and not self.is_runtime_frame(frame):
                accumulator ^= zlib.crc32(self.frame_key(frame).encode("utf-8"))
                hashed += 1

            listing[str(len(kept))] = self.frame_line(frame)
            kept.append(frame)

        return StackSignature(
            signature=format(accumulator & 0xFFFFFFFF, "x"),
            listing=listing,
            frames=kept,
        )
