"""HTML output format."""

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

FORMAT_ID = 2
FORMAT_NAME = "html"

ENTITIES: dict[str, str] = {
    '"': "&quot;",
    "&": "&amp;",
    "'": "&apos;",
    "<": "&lt;",
    ">": "&gt;",
}

TEMPLATE_DOCUMENT_OPEN = (
    "<!DOCTYPE html>\n"
    '<html lang="en" dir="ltr">\n'
    "<head>\n"
    '    <meta charset="utf-8">\n'
    "    <title>{title}</title>\n"
    "</head>\n"
    "<body>\n"
)

TEMPLATE_DOCUMENT_CLOSE = "</body>\n</html>\n"


def _indent(level: int) -> str:
    return " " * abs(level * INDENT_TAB_SIZE)


class HtmlFormat(Format):
    """A standalone HTML page; objects become ``div`` and arrays ``ul`` lists."""

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
        escaped_key = self.escape(key)
        escaped_value = self.escape(value)
        # HTML does not allow a div directly inside a ul, so use li there.
        wrap_el = "li" if scope.parent_type is ScopeType.ARRAY else "div"

        if kind is OutputType.SCOPE_OPEN:
            if scope.type is ScopeType.DOCUMENT:
                out.write(TEMPLATE_DOCUMENT_OPEN.format(title=out.cmdline))
                self._indent += 1
            elif scope.type is ScopeType.OBJECT:
                out.write(f'{_indent(self._indent)}<{wrap_el} class="object">\n')
                self._indent += 1
                out.write(f"{_indent(self._indent)}<h2>{escaped_key or ''}</h2>\n")
            elif scope.type is ScopeType.ARRAY:
                out.write(f'{_indent(self._indent)}<{wrap_el} class="array">\n')
                self._indent += 1
                out.write(f"{_indent(self._indent)}<h2>{escaped_key or ''}</h2>\n")
                out.write(f"{_indent(self._indent)}<ul>\n")
                self._indent += 1
        elif kind is OutputType.SCOPE_CLOSE:
            if self._indent <= 0:
                raise OutputError("html: programming error? indent is <= 0")
            if scope.type is ScopeType.DOCUMENT:
                out.write(TEMPLATE_DOCUMENT_CLOSE)
            elif scope.type is ScopeType.OBJECT:
                self._indent -= 1
                out.write(f"{_indent(self._indent)}</{wrap_el}>\n")
            elif scope.type is ScopeType.ARRAY:
                self._indent -= 1
                out.write(f"{_indent(self._indent)}</ul>\n")
                self._indent -= 1
                out.write(f"{_indent(self._indent)}</{wrap_el}>\n")
        elif kind is OutputType.ATTRIBUTE:
            el = "li" if scope.type is ScopeType.ARRAY else "p"
            prefix = _indent(self._indent)
            if key is not None and value is not None:
                out.write(
                    f'{prefix}<{el}><span class="key"><b>{escaped_key}</b></span>: '
                    f'<span class="value">{escaped_value}</span></{el}>\n'
                )
            elif key is not None:
                out.write("\n")
                out.write(f'{prefix}<{el}><span class="key"><b>{escaped_key}</b></span></{el}>\n')
            elif value is not None:
                out.write(f'{prefix}<{el}><span class="value">{escaped_value}</span></{el}>\n')