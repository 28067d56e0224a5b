"""Rendering of the DOS, COFF and optional headers of a PE file."""

from __future__ import annotations

from datetime import datetime, timezone

from .output import Output, ScopeType
from .pe import MAGIC_PE64, MAGIC_ROM, CoffHeader, DosHeader, OptionalHeader, PEFile

MACHINE_NAMES: dict[int, str] = {
    0x0: "Any machine type",
    0x1D3: "Matsushita AM33",
    0x8664: "x86-64 (64-bits)",
    0x1C0: "ARM little endian",
    0x1C4: "ARMv7 (or higher) Thumb mode only",
    0xC0EE: "clr pure MSIL (object only)",
    0xEBC: "EFI byte code",
    0x14C: "Intel 386 and compatible (32-bits)",
    0x200: "Intel Itanium",
    0x9041: "Mitsubishi M32R little endian",
    0x266: "MIPS16",
    0x366: "MIPS with FPU",
    0x466: "MIPS16 with FPU",
    0x1F0: "Power PC little endian",
    0x1F1: "Power PC with floating point support",
    0x166: "MIPS little endian",
    0x1A2: "Hitachi SH3",
    0x1A3: "Hitachi SH3 DSP",
    0x1A6: "Hitachi SH4",
    0x1A8: "Hitachi SH5",
    0x1C2: 'ARM or Thumb ("interworking")',
    0x169: "MIPS little-endian WCE v2",
}

SUBSYSTEM_NAMES: dict[int, str] = {
    0: "Unknown subsystem",
    1: "System native",
    2: "Windows GUI",
    3: "Windows CLI",
    7: "Posix CLI",
    9: "Windows CE GUI",
    10: "EFI application",
    11: "EFI driver with boot",
    12: "EFI run-time driver",
    13: "EFI ROM",
    14: "XBOX",
    16: "Boot application",
}

# Indexed by bit position in the COFF characteristics.
CHARACTERISTIC_NAMES: tuple[str, ...] = (
    "base relocations stripped",
    "executable image",
    "line numbers removed (deprecated)",
    "local symbols removed (deprecated)",
    "aggressively trim (deprecated for Windows 2000 and later)",
    "can handle more than 2 GB addresses",
    "",
    "little-endian (deprecated)",
    "32-bit machine",
    "debugging information removed",
    "copy to swap if it's on removable media",
    "copy to swap if it's on network media",
    "system file",
    "DLL image",
    "uniprocessor machine",
    "big-endian (deprecated)",
)

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _hex(value: int) -> str:
    return f"{value:#x}" if value else "0"


def machine_name(machine: int) -> str:
    """Human-readable name of a COFF machine type."""
    return MACHINE_NAMES.get(machine, "Unknown machine type")


def subsystem_name(subsystem: int) -> str:
    """Human-readable name of a Windows subsystem."""
    return SUBSYSTEM_NAMES.get(subsystem, "Unknown")


def format_timestamp(timestamp: int) -> str:
    """The COFF time stamp followed by its UTC date, as ``N (date)``."""
    try:
        t = datetime.fromtimestamp(timestamp, timezone.utc)
    except (OverflowError, OSError, ValueError):
        text = "invalid"
    else:
        text = (
            f"{_DAYS[t.weekday()]}, {t.day:02d} {_MONTHS[t.month - 1]} {t.year} "
            f"{t.hour:02d}:{t.minute:02d}:{t.second:02d} UTC"
        )
    return f"{timestamp} ({text})"


def _rows(out: Output, rows: list[tuple[str, str]]) -> None:
    for key, value in rows:
        out.output(key, value)


def render_dos_header(out: Output, header: DosHeader) -> None:
    """Write the DOS header as a ``DOS Header`` object."""
    out.open_scope("DOS Header", ScopeType.OBJECT)
    _rows(
        out,
        [
            ("Magic number", f"{_hex(header.e_magic)} (MZ)"),
            ("Bytes in last page", str(header.e_cblp)),
            ("Pages in file", str(header.e_cp)),
            ("Relocations", str(header.e_crlc)),
            ("Size of header in paragraphs", str(header.e_cparhdr)),
            ("Minimum extra paragraphs", str(header.e_minalloc)),
            ("Maximum extra paragraphs", str(header.e_maxalloc)),
            ("Initial (relative) SS value", _hex(header.e_ss)),
            ("Initial SP value", _hex(header.e_sp)),
            ("Initial IP value", _hex(header.e_ip)),
            ("Initial (relative) CS value", _hex(header.e_cs)),
            ("Address of relocation table", _hex(header.e_lfarlc)),
            ("Overlay number", _hex(header.e_ovno)),
            ("OEM identifier", _hex(header.e_oemid)),
            ("OEM information", _hex(header.e_oeminfo)),
            ("PE header offset", _hex(header.e_lfanew)),
        ],
    )
    out.close_scope()


def render_coff_header(out: Output, header: CoffHeader | PEFile) -> None:
    """Write the COFF header; given the whole PE file, reproducible builds are noted."""
    if isinstance(header, PEFile):
        coff, repro = header.coff, header.is_repro
    else:
        coff, repro = header, False

    out.open_scope("COFF/File header", ScopeType.OBJECT)
    if repro:
        stamp = f"0x{coff.time_date_stamp:x} (reproducible hash)"
    else:
        stamp = format_timestamp(coff.time_date_stamp)
    _rows(
        out,
        [
            ("Machine", f"{_hex(coff.machine)} {machine_name(coff.machine)}"),
            ("Number of sections", str(coff.number_of_sections)),
            ("Date/time stamp", stamp),
            ("Symbol Table offset", _hex(coff.pointer_to_symbol_table)),
            ("Number of symbols", str(coff.number_of_symbols)),
            ("Size of optional header", _hex(coff.size_of_optional_header)),
            ("Characteristics", _hex(coff.characteristics)),
        ],
    )
    out.open_scope("Characteristics names", ScopeType.ARRAY)
    for bit, name in enumerate(CHARACTERISTIC_NAMES):
        if coff.characteristics & (1 << bit):
            out.output(None, name)
    out.close_scope()
    out.close_scope()


def _common_rows(header: OptionalHeader, kind: str) -> list[tuple[str, str]]:
    return [
        ("Magic number", f"{_hex(header.magic)} ({kind})"),
        ("Linker major version", str(header.major_linker_version)),
        ("Linker minor version", str(header.minor_linker_version)),
        ("Size of .text section", _hex(header.size_of_code)),
        ("Size of .data section", _hex(header.size_of_initialized_data)),
        ("Size of .bss section", _hex(header.size_of_uninitialized_data)),
        ("Entrypoint", _hex(header.address_of_entry_point)),
        ("Address of .text section", _hex(header.base_of_code)),
    ]


def _rom_rows(header: OptionalHeader) -> list[tuple[str, str]]:
    rows = _common_rows(header, "ROM")
    rows.append(("Address of .data section", _hex(header.base_of_data or 0)))
    rows.append(("Address of .bss section", _hex(header.base_of_bss or 0)))
    rows.append(("GprMask", _hex(header.gpr_mask or 0)))
    for index, mask in enumerate(header.cpr_mask or (0, 0, 0, 0)):
        rows.append((f"CprMask[{index}]", _hex(mask)))
    rows.append(("GpValue", _hex(header.gp_value or 0)))
    return rows


def _image_rows(header: OptionalHeader) -> list[tuple[str, str]]:
    is64 = header.magic == MAGIC_PE64
    rows = _common_rows(header, "PE32+" if is64 else "PE32")
    if not is64:
        rows.append(("Address of .data section", _hex(header.base_of_data or 0)))

    def num(value: int | None) -> int:
        return value or 0

    subsystem = num(header.subsystem)
    rows += [
        ("ImageBase", _hex(num(header.image_base))),
        ("Alignment of sections", _hex(num(header.section_alignment))),
        ("Alignment factor", _hex(num(header.file_alignment))),
        ("Major version of required OS", str(num(header.major_operating_system_version))),
        ("Minor version of required OS", str(num(header.minor_operating_system_version))),
        ("Major version of image", str(num(header.major_image_version))),
        ("Minor version of image", str(num(header.minor_image_version))),
        ("Major version of subsystem", str(num(header.major_subsystem_version))),
        ("Minor version of subsystem", str(num(header.minor_subsystem_version))),
        ("Size of image", _hex(num(header.size_of_image))),
        ("Size of headers", _hex(num(header.size_of_headers))),
        ("Checksum", _hex(num(header.checksum))),
        ("Subsystem required", f"{_hex(subsystem)} ({subsystem_name(subsystem)})"),
        ("DLL characteristics", _hex(num(header.dll_characteristics))),
        ("Size of stack to reserve", _hex(num(header.size_of_stack_reserve))),
        ("Size of stack to commit", _hex(num(header.size_of_stack_commit))),
        ("Size of heap space to reserve", _hex(num(header.size_of_heap_reserve))),
        ("Size of heap space to commit", _hex(num(header.size_of_heap_commit))),
    ]
    return rows


def render_optional_header(out: Output, header: OptionalHeader | None) -> None:
    """Write the optional (image) header; nothing is written for ``None``."""
    if header is None:
        return
    out.open_scope("Optional/Image header", ScopeType.OBJECT)
    _rows(out, _rom_rows(header) if header.magic == MAGIC_ROM else _image_rows(header))
    out.close_scope()