"""Comma-separated values output format."""

from __future__ import annotations

from .output import Format, Output, OutputType, Scope, ScopeType, escape_ex, escape_ex_quoted

FORMAT_ID = 1
FORMAT_NAME = "csv"

ENTITIES: dict[str, str] = {
    "\n": "\\n",
    '"': '""',
}

_NEEDS_QUOTING = frozenset('\n",')


class CsvFormat(Format):
    """One ``key,value`` record per attribute, scope names on lines of their own.

    Fields holding a line break, a double quote or a comma are enclosed in
    double quotes, with every double quote inside doubled.
    """

    def __init__(self) -> None:
        super().__init__(FORMAT_ID, FORMAT_NAME, ENTITIES)

    def escape(self, text: str | None) -> str | None:
        """Escape ``text``, quoting the whole field when CSV requires it."""
        if text is None:
            return None
        if _NEEDS_QUOTING.intersection(text):
            return escape_ex_quoted(text, self.entities)
        return escape_ex(text, self.entities)

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
        containers = (ScopeType.OBJECT, ScopeType.ARRAY)

        if kind is OutputType.SCOPE_OPEN:
            if scope.type in containers:
                out.write(f"\n{escaped_key or ''}\n")
        elif kind is OutputType.SCOPE_CLOSE:
            if scope.type in containers:
                out.write("\n")
        elif kind is OutputType.ATTRIBUTE:
            if key is not None and value is not None:
                out.write(f"{escaped_key},{escaped_value}\n")
            elif key is not None:
                out.write(f"\n{escaped_key}\n")
            elif value is not None:
                out.write(f",{escaped_value}\n")