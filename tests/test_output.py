import io

import pytest

from pevkit.output import (
    Format,
    Output,
    OutputError,
    OutputType,
    ScopeType,
    escape_count_chars_ex,
    escape_ex,
    escape_ex_quoted,
)

HTML_ENTITIES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"}


def make_recorder(name="text", fmt_id=99):
    events = []

    def emitter(out, kind, scope, key, value):
        events.append((kind, scope, key, value))

    return Format(fmt_id, name, emitter=emitter), events


def test_escape_ex_replaces_entities():
    assert escape_ex("a&b<c", HTML_ENTITIES) == "a&amp;b&lt;c"


def test_escape_ex_without_table_is_identity():
    assert escape_ex("a&b", None) == "a&b"


def test_escape_count_matches_escaped_length():
    for text in ("", "plain", 'x"&"y', "<<>>"):
        assert escape_count_chars_ex(text, HTML_ENTITIES) == len(escape_ex(text, HTML_ENTITIES))


def test_escape_quoted_wraps_escaped_text():
    result = escape_ex_quoted("a&b", HTML_ENTITIES)
    assert result == '"' + escape_ex("a&b", HTML_ENTITIES) + '"'


def test_format_escape_keeps_none():
    fmt = Format(1, "x", HTML_ENTITIES)
    assert fmt.escape(None) is None
    assert fmt.escape_quoted(None) is None
    assert fmt.escape("<") == "&lt;"


def test_format_without_emitter_raises():
    out = Output(io.StringIO())
    fmt = Format(1, "bare")
    out.register_format(fmt)
    out.set_format(fmt)
    with pytest.raises(OutputError):
        out.open_document()


def test_register_duplicate_name_fails():
    out = Output(io.StringIO())
    fmt, _ = make_recorder("a", 1)
    out.register_format(fmt)
    other, _ = make_recorder("a", 2)
    with pytest.raises(OutputError):
        out.register_format(other)


def test_available_formats_in_registration_order():
    out = Output(io.StringIO())
    out.register_format(make_recorder("a", 1)[0])
    out.register_format(make_recorder("b", 2)[0])
    assert out.available_formats("|") == "a|b"


def test_set_format_by_name_unknown_fails():
    out = Output(io.StringIO())
    with pytest.raises(OutputError):
        out.set_format_by_name("nope")


def test_parse_and_unregister():
    out = Output(io.StringIO())
    fmt, _ = make_recorder("a", 1)
    out.register_format(fmt)
    assert out.parse_format("a") is fmt
    out.unregister_format(fmt)
    assert out.parse_format("a") is None
    with pytest.raises(OutputError):
        out.unregister_format(fmt)


def test_default_format_is_text():
    out = Output(io.StringIO())
    fmt, events = make_recorder("text")
    out.register_format(fmt)
    out.open_document()
    assert out.format is fmt
    assert events[0][0] == OutputType.SCOPE_OPEN


def test_no_format_raises():
    out = Output(io.StringIO())
    with pytest.raises(OutputError):
        out.open_document()


def test_scope_events_carry_depth_and_parent():
    out = Output(io.StringIO())
    fmt, events = make_recorder()
    out.register_format(fmt)
    out.open_document()
    out.open_scope("Sections", ScopeType.ARRAY)
    out.open_scope("Section", ScopeType.OBJECT)
    out.output("Name", ".text")
    out.close_scope()
    out.close_scope()
    out.close_document()

    kinds = [e[0] for e in events]
    assert kinds == [
        OutputType.SCOPE_OPEN,
        OutputType.SCOPE_OPEN,
        OutputType.SCOPE_OPEN,
        OutputType.ATTRIBUTE,
        OutputType.SCOPE_CLOSE,
        OutputType.SCOPE_CLOSE,
        OutputType.SCOPE_CLOSE,
    ]
    section_scope = events[2][1]
    assert section_scope.depth == 2
    assert section_scope.parent_type == ScopeType.ARRAY
    attr = events[3]
    assert attr[1] is section_scope
    assert (attr[2], attr[3]) == ("Name", ".text")
    assert events[4][1] is section_scope
    assert out.depth == 0


def test_many_nested_scopes_grow_stack():
    out = Output(io.StringIO())
    fmt, _ = make_recorder()
    out.register_format(fmt)
    for _ in range(40):
        out.open_scope("o", ScopeType.OBJECT)
    assert out.depth == 40


def test_close_without_scope_fails():
    out = Output(io.StringIO())
    out.register_format(make_recorder()[0])
    with pytest.raises(OutputError):
        out.close_scope()


def test_close_document_requires_document():
    out = Output(io.StringIO())
    out.register_format(make_recorder()[0])
    out.open_scope("obj", ScopeType.OBJECT)
    with pytest.raises(OutputError):
        out.close_document()


def test_attribute_outside_scope_fails():
    out = Output(io.StringIO())
    out.register_format(make_recorder()[0])
    with pytest.raises(OutputError):
        out.output("k", "v")


def test_keyval_is_attribute():
    out = Output(io.StringIO())
    fmt, events = make_recorder()
    out.register_format(fmt)
    out.open_document()
    out.keyval("k", "v")
    assert events[-1][0] == OutputType.ATTRIBUTE
    assert events[-1][2:] == ("k", "v")


def test_cmdline_and_write():
    stream = io.StringIO()
    out = Output(stream)
    out.set_cmdline(["readpe", "-f", "json", "file.exe"])
    out.write("abc")
    assert out.cmdline == "readpe -f json file.exe"
    assert stream.getvalue() == "abc"