"""XML output format."""

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

FORMAT_ID = 4
FORMAT_NAME = "xml"

ENTITIES: dict[str, str] = {
    '"': "&quot;",
    "&": "&amp;",
    "'": "&apos;",
    "<": "&lt;",
    ">": "&gt;",
}


def _indent(level: int) -> str:
    return " " * abs(level * INDENT_TAB_SIZE)


class XmlFormat(Format):
    """``<object>``, ``<array>`` and ``<attribute>`` elements under ``<document>``."""

    def __init__(self) -> None:
        super().__init__(FORMAT_ID, FORMAT_NAME, ENTITIES)
        self._indent = 0

    def emit(
        self,
        out: Output,
        kind: OutputType,
        scope: Scope,
        key: str | None,
        value: str | None,
    ) -> None:
        escaped_key = self.escape(key) or ""
        escaped_value = self.escape(value)
        elements = {ScopeType.OBJECT: "object", ScopeType.ARRAY: "array"}

        if kind is OutputType.SCOPE_OPEN:
            if scope.type is ScopeType.DOCUMENT:
                out.write(f'<document cmdline="{out.cmdline}">\n')
                self._indent += 1
            elif scope.type in elements:
                tag = elements[scope.type]
                out.write(f'{_indent(self._indent)}<{tag} name="{escaped_key}">\n')
                self._indent += 1
        elif kind is OutputType.SCOPE_CLOSE:
            if self._indent <= 0:
                raise OutputError("xml: programming error? indent is <= 0")
            if scope.type is ScopeType.DOCUMENT:
                out.write("</document>\n")
            elif scope.type in elements:
                self._indent -= 1
                out.write(f"{_indent(self._indent)}</{elements[scope.type]}>\n")
        elif kind is OutputType.ATTRIBUTE:
            prefix = _indent(self._indent)
            if key is not None and value is not None:
                out.write(f'{prefix}<attribute name="{escaped_key}">{escaped_value}</attribute>\n')
            elif key is not None:
                out.write(f'{prefix}<attribute name="{escaped_key}">\n')
            elif value is not None:
                out.write(f"{prefix}<attribute>{value}</attribute>\n")