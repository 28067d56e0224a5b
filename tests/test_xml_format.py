import io
import xml.etree.ElementTree as ET

import pytest

from pevkit.output import Output, OutputError, OutputType, Scope, ScopeType
from pevkit.xml_format import XmlFormat


def make_output():
    out = Output(io.StringIO())
    fmt = XmlFormat()
    out.register_format(fmt)
    out.set_format(fmt)
    return out, fmt


def test_registered_by_name():
    out, fmt = make_output()
    assert out.set_format_by_name("xml") is fmt
    assert fmt.id == 4


def test_document_parses_as_xml():
    out, _ = make_output()
    out.set_cmdline(["readpe", "sample.exe"])
    out.open_document()
    out.open_scope("DOS Header", ScopeType.OBJECT)
    out.output("Magic number", "0x5a4d (MZ)")
    out.close_scope()
    out.open_scope("Characteristics names", ScopeType.ARRAY)
    out.output(None, "DLL image")
    out.close_scope()
    out.close_document()

    root = ET.fromstring(out.stream.getvalue())
    assert root.tag == "document"
    assert root.get("cmdline") == "readpe sample.exe"

    obj, arr = list(root)
    assert (obj.tag, obj.get("name")) == ("object", "DOS Header")
    attr = obj.find("attribute")
    assert attr.get("name") == "Magic number"
    assert attr.text == "0x5a4d (MZ)"
    assert (arr.tag, arr.get("name")) == ("array", "Characteristics names")
    assert [a.text for a in arr] == ["DLL image"]


def test_special_characters_round_trip():
    key = "a<b>'c'"
    value = 'x & "y"'
    out, _ = make_output()
    out.open_document()
    out.output(key, value)
    out.close_document()
    attr = ET.fromstring(out.stream.getvalue()).find("attribute")
    assert attr.get("name") == key
    assert attr.text == value


def test_entity_escape():
    assert XmlFormat().escape("<&>") == "&lt;&amp;&gt;"


def test_nested_scopes_are_indented():
    out, _ = make_output()
    out.open_document()
    out.open_scope("Header", ScopeType.OBJECT)
    out.output("Key", "Value")
    out.close_scope()
    out.close_document()
    lines = out.stream.getvalue().splitlines()
    assert lines[1] == " " * 4 + '<object name="Header">'
    assert lines[2].startswith(" " * 8 + "<attribute")
    assert lines[3] == " " * 4 + "</object>"


def test_close_without_open_raises():
    fmt = XmlFormat()
    out = Output(io.StringIO())
    scope = Scope(name="x", type=ScopeType.ARRAY, depth=0)
    with pytest.raises(OutputError):
        fmt.emit(out, OutputType.SCOPE_CLOSE, scope, "x", None)


def test_none_escape_stays_none():
    assert XmlFormat().escape(None) is None