"""Plain text output format."""

from __future__ import annotations

from .output import INDENT_TAB_SIZE, Format, Output, OutputType, Scope, ScopeType

FORMAT_ID = 3
FORMAT_NAME = "text"
SPACES = 32


def _indent(level: int) -> str:
    return " " * abs(level * INDENT_TAB_SIZE)


def _fill(width: int) -> str:
    # A single space padded to |width| columns, never fewer than one.
    return " " * max(1, abs(width))


class TextFormat(Format):
    """Indented ``key: value`` text with values aligned in one column."""

    def __init__(self) -> None:
        super().__init__(FORMAT_ID, FORMAT_NAME, None)
        self._indent = 0

    def emit(
        self,
        out: Output,
        kind: OutputType,
        scope: Scope,
        key: str | None,
        value: str | None,
    ) -> None:
        escaped_key = self.escape(key)
        escaped_value = self.escape(value)

        if kind is OutputType.SCOPE_OPEN:
            if scope.type in (ScopeType.OBJECT, ScopeType.ARRAY):
                if key is not None:
                    out.write(f"{_indent(self._indent)}{escaped_key}\n")
                self._indent += 1
        elif kind is OutputType.SCOPE_CLOSE:
            self._indent -= 1
        elif kind is OutputType.ATTRIBUTE:
            key_size = len(key) if key is not None else 0
            prefix = _indent(self._indent)
            if key is not None and value is not None:
                out.write(f"{prefix}{escaped_key}:{_fill(SPACES - key_size)}{escaped_value}\n")
            elif key is not None:
                out.write(f"{prefix}{escaped_key}\n")
            elif value is not None:
                out.write(f"{prefix}{_fill(SPACES - key_size + 1)}{escaped_value}\n")