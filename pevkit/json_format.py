"""JSON output format."""

from __future__ import annotations

from .output import (
    INDENT_TAB_SIZE,
    Format,
    Output,
    OutputError,
    OutputType,
    Scope,
    ScopeType,
)

FORMAT_ID = 6
FORMAT_NAME = "json"


def _build_entities() -> dict[str, str]:
    table = {chr(code): f"\\u{code:04x}" for code in range(1, 32)}
    table.update(
        {
            "\x08": "\\b",
            "\n": "\\n",
            "\x0b": "\\t",
            "\r": "\\r",
            '"': '\\"',
            "\\": "\\\\",
            "\x7f": "\\u007f",
        }
    )
    return table


ENTITIES: dict[str, str] = _build_entities()


def _indent(level: int) -> str:
    return " " * abs(level * INDENT_TAB_SIZE)


class JsonFormat(Format):
    """Indented JSON; keys are dropped for scopes that sit inside arrays."""

    def __init__(self) -> None:
        super().__init__(FORMAT_ID, FORMAT_NAME, ENTITIES)
        self._indent = 0
        self._num_attr = 0

    def _separate(self, out: Output) -> None:
        if self._num_attr > 0:
            out.write(",")
        out.write("\n")

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
        within_array = scope.parent_type is ScopeType.ARRAY

        if kind is OutputType.SCOPE_OPEN:
            brackets = {ScopeType.OBJECT: "{", ScopeType.ARRAY: "["}
            if scope.type is ScopeType.DOCUMENT:
                out.write(f"{_indent(self._indent)}{{")
                self._indent += 1
                self._num_attr = 0
            elif scope.type in brackets:
                self._separate(out)
                opener = brackets[scope.type]
                prefix = _indent(self._indent)
                if key is not None and not within_array:
                    out.write(f'{prefix}"{escaped_key}": {opener}')
                else:
                    out.write(f"{prefix}{opener}")
                self._indent += 1
                self._num_attr = 0
        elif kind is OutputType.SCOPE_CLOSE:
            if self._indent <= 0:
                raise OutputError("json: programming error? indent is <= 0")
            out.write("\n")
            closers = {
                ScopeType.DOCUMENT: "}\n",
                ScopeType.OBJECT: "}",
                ScopeType.ARRAY: "]",
            }
            closer = closers.get(scope.type)
            if closer is not None:
                self._indent -= 1
                out.write(f"{_indent(self._indent)}{closer}")
            # A closed scope counts as an attribute of its parent.
            self._num_attr += 1
        elif kind is OutputType.ATTRIBUTE:
            self._separate(out)
            prefix = _indent(self._indent)
            if key is not None and value is not None:
                out.write(f'{prefix}"{escaped_key}": "{escaped_value}"')
            elif key is not None:
                out.write(f'{prefix}"{escaped_key}"')
            elif value is not None:
                out.write(f'{prefix}"{escaped_value}"')
            self._num_attr += 1