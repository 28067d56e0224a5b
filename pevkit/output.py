"""Structured output: scopes, attributes and pluggable output formats."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import TextIO

from .stack import Stack

VERSION = "0.84"
TOOLKIT = f"from pevkit {VERSION} toolkit"

INDENT_TAB_SIZE = 4
DEFAULT_FORMAT = "text"

Entities = Mapping[str, str]


class OutputType(IntEnum):
    SCOPE_UNKNOWN = 0
    SCOPE_OPEN = 1
    SCOPE_CLOSE = 2
    ATTRIBUTE = 3


class ScopeType(IntEnum):
    UNKNOWN = 0
    DOCUMENT = 1
    OBJECT = 2
    ARRAY = 3


@dataclass(frozen=True)
class Scope:
    """An open document, object or array."""

    name: str | None
    type: ScopeType
    depth: int
    parent_type: ScopeType = ScopeType.UNKNOWN


class OutputError(Exception):
    """Raised on misuse of the output machinery."""


def escape_ex(text: str, entities: Entities | None) -> str:
    """Replace every character that has an entry in ``entities``."""
    if not entities:
        return text
    return "".join(entities.get(ch, ch) for ch in text)


def escape_count_chars_ex(text: str, entities: Entities | None) -> int:
    """Length of ``text`` once escaped with ``entities``."""
    if not entities:
        return len(text)
    return sum(len(entities.get(ch, ch)) for ch in text)


def escape_ex_quoted(text: str, entities: Entities | None) -> str:
    """Escape ``text`` and enclose it in double quotes."""
    return f'"{escape_ex(text, entities)}"'


Emitter = Callable[["Output", OutputType, Scope, "str | None", "str | None"], None]


class Format:
    """An output format: a name, an entity table and a renderer."""

    def __init__(
        self,
        fmt_id: int,
        name: str,
        entities: Entities | None = None,
        emitter: Emitter | None = None,
    ) -> None:
        self.id = fmt_id
        self.name = name
        self.entities = entities
        self._emitter = emitter

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, name={self.name!r})"

    def escape(self, text: str | None) -> str | None:
        """Escape ``text`` for this format; ``None`` stays ``None``."""
        if text is None:
            return None
        return escape_ex(text, self.entities)

    def escape_quoted(self, text: str | None) -> str | None:
        """Escape ``text`` and enclose it in double quotes."""
        if text is None:
            return None
        return escape_ex_quoted(text, self.entities)

    def emit(
        self,
        out: Output,
        kind: OutputType,
        scope: Scope,
        key: str | None,
        value: str | None,
    ) -> None:
        """Render one output event to ``out``."""
        if self._emitter is None:
            raise OutputError(f"format {self.name!r} cannot render output")
        self._emitter(out, kind, scope, key, value)


class Output:
    """Tracks open scopes and hands each event to the selected format."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.cmdline = ""
        self._formats: dict[str, Format] = {}
        self._format: Format | None = None
        self._scopes: Stack[Scope] = Stack(16)

    def write(self, text: str) -> None:
        """Write raw text to the output stream."""
        self.stream.write(text)

    # Formats

    @property
    def formats(self) -> list[Format]:
        return list(self._formats.values())

    @property
    def format(self) -> Format:
        """The selected format, falling back to the default text format."""
        if self._format is None:
            fallback = self._formats.get(DEFAULT_FORMAT)
            if fallback is None:
                raise OutputError("no output format selected")
            self._format = fallback
        return self._format

    def register_format(self, fmt: Format) -> None:
        if fmt.name in self._formats or any(f.id == fmt.id for f in self._formats.values()):
            raise OutputError(f"format {fmt.name!r} is already registered")
        self._formats[fmt.name] = fmt

    def unregister_format(self, fmt: Format) -> None:
        if self._formats.get(fmt.name) is not fmt:
            raise OutputError(f"format {fmt.name!r} is not registered")
        del self._formats[fmt.name]
        if self._format is fmt:
            self._format = None

    def parse_format(self, name: str) -> Format | None:
        return self._formats.get(name)

    def set_format(self, fmt: Format) -> None:
        self._format = fmt

    def set_format_by_name(self, name: str) -> Format:
        fmt = self.parse_format(name)
        if fmt is None:
            raise OutputError(f"invalid format option: {name!r}")
        self.set_format(fmt)
        return fmt

    def available_formats(self, separator: str = "|") -> str:
        return separator.join(self._formats)

    def set_cmdline(self, argv: Iterable[str]) -> None:
        self.cmdline = " ".join(argv)

    # Scopes

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def _current(self) -> Scope | None:
        return self._scopes.peek() if len(self._scopes) else None

    def open_document(self) -> None:
        self.open_document_with_name(None)

    def open_document_with_name(self, name: str | None) -> None:
        self.open_scope(name, ScopeType.DOCUMENT)

    def close_document(self) -> None:
        current = self._current()
        if current is None or current.type is not ScopeType.DOCUMENT:
            raise OutputError("no open document to close")
        self.close_scope()

    def open_scope(self, name: str | None, scope_type: ScopeType) -> None:
        parent = self._current()
        scope = Scope(
            name=name,
            type=ScopeType(scope_type),
            depth=len(self._scopes),
            parent_type=parent.type if parent else ScopeType.UNKNOWN,
        )
        if len(self._scopes) >= self._scopes.capacity:
            self._scopes.grow(self._scopes.capacity * 2)
        self._scopes.push(scope)
        self.format.emit(self, OutputType.SCOPE_OPEN, scope, name, None)

    def close_scope(self) -> None:
        if not len(self._scopes):
            raise OutputError("no open scope to close")
        scope = self._scopes.pop()
        self.format.emit(self, OutputType.SCOPE_CLOSE, scope, scope.name, None)

    # Attributes

    def output(self, key: str | None, value: str | None) -> None:
        scope = self._current()
        if scope is None:
            raise OutputError("attribute written outside of any scope")
        self.format.emit(self, OutputType.ATTRIBUTE, scope, key, value)

    def keyval(self, key: str | None, value: str | None) -> None:
        self.output(key, value)