import io
import struct

import pytest

from pevkit.output import Format, Output, OutputType, ScopeType
from pevkit.pe import OptionalHeader, parse
from pevkit.plugins import create_output
from pevkit.readpe_headers import (
    format_timestamp,
    machine_name,
    render_coff_header,
    render_dos_header,
    render_optional_header,
    subsystem_name,
)


def build_pe() -> bytes:
    dos = bytearray(64)
    struct.pack_into("<H", dos, 0, 0x5A4D)
    struct.pack_into("<I", dos, 60, 64)
    coff = struct.pack("<HHIIIHH", 0x14C, 1, 0, 0, 0, 224, 0x102)
    optional = struct.pack(
        "<HBB9I6H4I2H6I",
        0x10B, 14, 0, 0x200, 0, 0, 0x1000, 0x1000, 0x2000,
        0x400000, 0x1000, 0x200,
        6, 0, 0, 0, 6, 0,
        0, 0x2000, 0x400, 0,
        2, 0,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16,
    )
    directories = bytes(16 * 8)
    section = struct.pack("<8s6I2HI", b".text", 0x200, 0x1000, 0x200, 0x400, 0, 0, 0, 0, 0x60000020)
    data = bytearray(dos + b"PE\0\0" + coff + optional + directories + section)
    data.extend(bytes(0x600 - len(data)))
    return bytes(data)


class Recorder:
    def __init__(self):
        self.events = []
        self.out = Output(io.StringIO())
        fmt = Format(99, "recorder", None, self._record)
        self.out.register_format(fmt)
        self.out.set_format(fmt)

    def _record(self, out, kind, scope, key, value):
        self.events.append((kind, scope.type, key, value))

    def attributes(self):
        return {k: v for kind, _t, k, v in self.events if kind is OutputType.ATTRIBUTE and k}

    def values(self):
        return [v for kind, _t, k, v in self.events if kind is OutputType.ATTRIBUTE and k is None]

    def opened(self):
        return [k for kind, _t, k, _v in self.events if kind is OutputType.SCOPE_OPEN]


@pytest.fixture
def pe():
    return parse(build_pe())


def test_machine_names():
    assert machine_name(0x14C) == "Intel 386 and compatible (32-bits)"
    assert machine_name(0x8664) == "x86-64 (64-bits)"
    assert machine_name(0x1234) == "Unknown machine type"


def test_subsystem_names():
    assert subsystem_name(2) == "Windows GUI"
    assert subsystem_name(0) == "Unknown subsystem"
    assert subsystem_name(99) == "Unknown"


def test_format_timestamp_epoch():
    assert format_timestamp(0) == "0 (Thu, 01 Jan 1970 00:00:00 UTC)"


def test_format_timestamp_starts_with_number():
    assert format_timestamp(1234567890).startswith("1234567890 (")
    assert format_timestamp(1234567890).endswith(" UTC)")


def test_render_dos_header(pe):
    rec = Recorder()
    render_dos_header(rec.out, pe.dos)
    attrs = rec.attributes()
    assert rec.opened() == ["DOS Header"]
    assert attrs["Magic number"] == "0x5a4d (MZ)"
    assert attrs["PE header offset"] == "0x40"
    assert attrs["Initial SP value"] == "0"
    assert rec.out.depth == 0


def test_render_coff_header(pe):
    rec = Recorder()
    render_coff_header(rec.out, pe.coff)
    attrs = rec.attributes()
    assert rec.opened() == ["COFF/File header", "Characteristics names"]
    assert attrs["Machine"] == "0x14c Intel 386 and compatible (32-bits)"
    assert attrs["Number of sections"] == "1"
    assert attrs["Date/time stamp"] == format_timestamp(0)
    assert rec.values() == ["executable image", "32-bit machine"]


def test_render_coff_header_from_pe_file(pe):
    direct, whole = Recorder(), Recorder()
    render_coff_header(direct.out, pe.coff)
    render_coff_header(whole.out, pe)
    assert direct.events == whole.events


def test_render_optional_header_pe32(pe):
    rec = Recorder()
    render_optional_header(rec.out, pe.optional)
    attrs = rec.attributes()
    assert attrs["Magic number"] == "0x10b (PE32)"
    assert attrs["Subsystem required"] == "0x2 (Windows GUI)"
    assert attrs["ImageBase"] == hex(pe.optional.image_base)
    assert attrs["Address of .data section"] == hex(pe.optional.base_of_data)
    assert attrs["Linker major version"] == str(pe.optional.major_linker_version)


def test_render_optional_header_pe64():
    header = OptionalHeader(
        magic=0x20B, major_linker_version=14, minor_linker_version=0,
        size_of_code=0x200, size_of_initialized_data=0, size_of_uninitialized_data=0,
        address_of_entry_point=0x1000, base_of_code=0x1000,
        image_base=0x140000000, subsystem=3,
    )
    rec = Recorder()
    render_optional_header(rec.out, header)
    attrs = rec.attributes()
    assert attrs["Magic number"] == "0x20b (PE32+)"
    assert attrs["ImageBase"] == "0x140000000"
    assert attrs["Subsystem required"] == "0x3 (Windows CLI)"
    assert "Address of .data section" not in attrs


def test_render_optional_header_rom():
    header = OptionalHeader(
        magic=0x107, major_linker_version=1, minor_linker_version=2,
        size_of_code=0, size_of_initialized_data=0, size_of_uninitialized_data=0,
        address_of_entry_point=0, base_of_code=0, base_of_data=0,
        base_of_bss=0x30, gpr_mask=0, cpr_mask=(1, 2, 3, 4), gp_value=0,
    )
    rec = Recorder()
    render_optional_header(rec.out, header)
    attrs = rec.attributes()
    assert attrs["Magic number"] == "0x107 (ROM)"
    assert [attrs[f"CprMask[{i}]"] for i in range(4)] == [hex(v) for v in header.cpr_mask]
    assert attrs["Address of .bss section"] == hex(header.base_of_bss)


def test_render_optional_header_none_writes_nothing():
    rec = Recorder()
    render_optional_header(rec.out, None)
    assert rec.events == []


def test_text_output_balanced(pe):
    stream = io.StringIO()
    out = create_output(stream)
    out.open_document()
    render_dos_header(out, pe.dos)
    render_coff_header(out, pe)
    render_optional_header(out, pe.optional)
    out.close_document()
    text = stream.getvalue()
    assert out.depth == 0
    assert text.startswith("DOS Header\n")
    assert "Optional/Image header" in text
    assert [k for k, _ in [(ScopeType.OBJECT, 0)]] == [ScopeType.OBJECT]