"""Line bookkeeping for script fragments executed in one session."""

import posixpath
from dataclasses import dataclass, field
from typing import List, Tuple


class SourceLineError(LookupError):
    """Raised when a global line does not belong to any registered fragment."""


@dataclass(frozen=True)
class SourceFragment:
    name: str
    line_count: int


@dataclass
class SourceMap:
    """Ordered, append-only list of named fragments.

    The engine reports line numbers across the concatenation of every fragment
    run in a session. ``resolve`` maps such a global line back to the fragment
    that owns it and the line inside that fragment.
    """

    fragments: List[SourceFragment] = field(default_factory=list)

    def append(self, name: str, text: str) -> "SourceMap":
        text = text.rstrip("\n")
        self.fragments.append(SourceFragment(name=name, line_count=text.count("\n") + 1))
        return self

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.fragments)

    def resolve(self, line: int) -> Tuple[str, int]:
        """Return ``(base name, relative line)`` for a global line number."""
        if line < 1:
            raise SourceLineError(f"line number {line} out of bounds")
        count = 0
        for fragment in self.fragments:
            count += fragment.line_count
            if count >= line:
                return _base_name(fragment.name), fragment.line_count - (count - line)
        raise SourceLineError(f"line number {line} out of bounds")

    def __len__(self) -> int:
        return len(self.fragments)


def _base_name(name: str) -> str:
    # Diagnostics carry the base name only.
    return posixpath.basename(name.replace("\\", "/"))
