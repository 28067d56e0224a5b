"""Show the headers, directories, imports, exports and sections of a PE file."""

from __future__ import annotations

import getopt
import struct
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field

from .output import TOOLKIT, Output, OutputError, ScopeType
from .pe import MAGIC_PE64, MAX_DIRECTORIES, MAX_SECTIONS, PEFile, PEFormatError, load
from .plugins import create_output
from .readpe_headers import render_coff_header, render_dos_header, render_optional_header

PROGRAM = "readpe"

IMAGE_FILE_EXECUTABLE_IMAGE = 0x0002
IMAGE_DIRECTORY_ENTRY_EXPORT = 0
IMAGE_DIRECTORY_ENTRY_IMPORT = 1

# Section flags valid for executables, with their descriptions.
SECTION_FLAGS: tuple[tuple[int, str], ...] = (
    (0x00000020, "contains executable code"),
    (0x00000040, "contains initialized data"),
    (0x00000080, "contains uninitialized data"),
    (0x00008000, "contains data referenced through the GP"),
    (0x01000000, "contains extended relocations"),
    (0x02000000, "can be discarded as needed"),
    (0x04000000, "cannot be cached"),
    (0x08000000, "is not pageable"),
    (0x10000000, "can be shared in memory"),
    (0x20000000, "is executable"),
    (0x40000000, "is readable"),
    (0x80000000, "is writable"),
)

DIRECTORY_NAMES: tuple[str, ...] = (
    "Export Table",
    "Import Table",
    "Resource Table",
    "Exception Table",
    "Certificate Table",
    "Base Relocation Table",
    "Debug",
    "Architecture",
    "Global Ptr",
    "Thread Local Storage (TLS)",
    "Load Config Table",
    "Bound Import",
    "Import Address Table (IAT)",
    "Delay Import Descriptor",
    "CLR Runtime Header",
    "",
)

_SHORT_OPTIONS = "AHSh:dief:V"
_LONG_OPTIONS = [
    "help",
    "all",
    "all-headers",
    "all-sections",
    "header=",
    "imports",
    "exports",
    "dirs",
    "format=",
    "version",
]

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_DESCRIPTOR = struct.Struct("<5I")
_EXPORT_DIR = struct.Struct("<2I2H7I")
_MAX_ENTRIES = 0x10000


@dataclass
class Options:
    """What parts of the file to show."""

    all: bool = True
    dos: bool = False
    coff: bool = False
    opt: bool = False
    dirs: bool = False
    imports: bool = False
    exports: bool = False
    all_headers: bool = False
    all_sections: bool = False
    show_help: bool = False
    show_version: bool = False


def _hex(value: int) -> str:
    return f"{value:#x}" if value else "0"


def _usage(out: Output) -> str:
    formats = out.available_formats("|")
    return (
        f"Usage: {PROGRAM} OPTIONS FILE\n"
        "Show PE file headers\n"
        f"\nExample: {PROGRAM} --header optional winzip.exe\n"
        "\nOptions:\n"
        " -A, --all                        Full output (default).\n"
        " -H, --all-headers                Show all PE headers.\n"
        " -S, --all-sections               Show PE section headers.\n"
        f" -f, --format <{formats}>  Change output format (default: text).\n"
        " -d, --dirs                       Show data directories.\n"
        " -h, --header <dos|coff|optional> Show specific header. It can be used multiple times.\n"
        " -i, --imports                    Show imported functions.\n"
        " -e, --exports                    Show exported functions.\n"
        " -V, --version                    Show version.\n"
        " --help                           Show this help.\n"
    )


def parse_options(argv: Sequence[str], out: Output) -> Options:
    """Parse command-line arguments (without the program name).

    Raises ``getopt.GetoptError`` on an unknown option and ``ValueError``
    on an invalid header or format name. ``--format`` selects the format
    on ``out``. ``--help`` and ``--version`` stop parsing.
    """
    opts, _ = getopt.gnu_getopt(list(argv), _SHORT_OPTIONS, _LONG_OPTIONS)
    options = Options()
    for opt, value in opts:
        if opt == "--help":
            options.show_help = True
            return options
        if opt in ("-V", "--version"):
            options.show_version = True
            return options
        if opt in ("-A", "--all"):
            options.all = True
        elif opt in ("-H", "--all-headers"):
            options.all = False
            options.all_headers = True
        elif opt in ("-d", "--dirs"):
            options.all = False
            options.dirs = True
        elif opt in ("-S", "--all-sections"):
            options.all = False
            options.all_sections = True
        elif opt in ("-h", "--header"):
            options.all = False
            if value == "dos":
                options.dos = True
            elif value == "coff":
                options.coff = True
            elif value == "optional":
                options.opt = True
            else:
                raise ValueError("invalid header option")
        elif opt in ("-i", "--imports"):
            options.all = False
            options.imports = True
        elif opt in ("-e", "--exports"):
            options.all = False
            options.exports = True
        elif opt in ("-f", "--format"):
            try:
                out.set_format_by_name(value)
            except OutputError:
                raise ValueError("invalid format option") from None
    return options


# Reading of import and export tables


@dataclass(frozen=True)
class _ImportedFunction:
    hint: int = 0
    name: str | None = None
    ordinal: int = 0


@dataclass(frozen=True)
class _ImportedDll:
    name: str
    functions: list[_ImportedFunction] = field(default_factory=list)


@dataclass(frozen=True)
class _ExportedFunction:
    ordinal: int
    address: int
    hint: int
    name: str | None
    fwd_name: str | None


def _unpack(layout: struct.Struct, data: bytes, offset: int) -> tuple | None:
    if offset < 0 or offset + layout.size > len(data):
        return None
    return layout.unpack_from(data, offset)


def _cstring(data: bytes, offset: int) -> str:
    if not 0 <= offset < len(data):
        return ""
    end = data.find(b"\0", offset)
    if end < 0:
        end = len(data)
    return data[offset:end].decode("latin-1")


def _directory(pe: PEFile, index: int):
    if index < len(pe.directories) and pe.directories[index].virtual_address:
        return pe.directories[index]
    return None


def _read_imports(pe: PEFile) -> list[_ImportedDll]:
    directory = _directory(pe, IMAGE_DIRECTORY_ENTRY_IMPORT)
    if directory is None:
        return []
    data = pe.data
    is64 = pe.optional is not None and pe.optional.magic == MAGIC_PE64
    thunk = struct.Struct("<Q" if is64 else "<I")
    ordinal_flag = 1 << (63 if is64 else 31)

    dlls: list[_ImportedDll] = []
    offset = pe.rva_to_offset(directory.virtual_address)
    for _ in range(_MAX_ENTRIES):
        entry = _unpack(_DESCRIPTOR, data, offset)
        if entry is None or not any(entry):
            break
        original_first_thunk, _stamp, _chain, name_rva, first_thunk = entry
        functions: list[_ImportedFunction] = []
        thunk_rva = original_first_thunk or first_thunk
        if thunk_rva:
            thunk_offset = pe.rva_to_offset(thunk_rva)
            for _ in range(_MAX_ENTRIES):
                item = _unpack(thunk, data, thunk_offset)
                if item is None or item[0] == 0:
                    break
                value = item[0]
                if value & ordinal_flag:
                    functions.append(_ImportedFunction(ordinal=value & 0xFFFF))
                else:
                    hint_offset = pe.rva_to_offset(value & 0x7FFFFFFF)
                    hint = _unpack(_U16, data, hint_offset)
                    functions.append(
                        _ImportedFunction(
                            hint=hint[0] if hint else 0,
                            name=_cstring(data, hint_offset + _U16.size),
                        )
                    )
                thunk_offset += thunk.size
        name = _cstring(data, pe.rva_to_offset(name_rva)) if name_rva else ""
        dlls.append(_ImportedDll(name, functions))
        offset += _DESCRIPTOR.size
    return dlls


def _read_exports(pe: PEFile) -> tuple[str | None, list[_ExportedFunction]]:
    directory = _directory(pe, IMAGE_DIRECTORY_ENTRY_EXPORT)
    if directory is None:
        return None, []
    data = pe.data
    header = _unpack(_EXPORT_DIR, data, pe.rva_to_offset(directory.virtual_address))
    if header is None:
        return None, []
    (_chars, _stamp, _major, _minor, name_rva, base,
     num_functions, num_names, functions_rva, names_rva, ordinals_rva) = header
    name = _cstring(data, pe.rva_to_offset(name_rva)) if name_rva else None

    names: dict[int, tuple[int, str]] = {}
    if names_rva and ordinals_rva:
        names_offset = pe.rva_to_offset(names_rva)
        ordinals_offset = pe.rva_to_offset(ordinals_rva)
        for index in range(min(num_names, _MAX_ENTRIES)):
            entry = _unpack(_U32, data, names_offset + index * _U32.size)
            ordinal = _unpack(_U16, data, ordinals_offset + index * _U16.size)
            if entry is None or ordinal is None:
                break
            names.setdefault(ordinal[0], (index, _cstring(data, pe.rva_to_offset(entry[0]))))

    functions: list[_ExportedFunction] = []
    if functions_rva:
        functions_offset = pe.rva_to_offset(functions_rva)
        end = directory.virtual_address + directory.size
        for index in range(min(num_functions, _MAX_ENTRIES)):
            entry = _unpack(_U32, data, functions_offset + index * _U32.size)
            if entry is None:
                break
            address = entry[0]
            hint, func_name = names.get(index, (0, None))
            fwd_name = None
            if directory.virtual_address <= address < end:
                fwd_name = _cstring(data, pe.rva_to_offset(address))
            functions.append(
                _ExportedFunction((base + index) & 0xFFFFFFFF, address, hint, func_name, fwd_name)
            )
    return name, functions


# Rendering


def render_directories(out: Output, pe: PEFile) -> None:
    """Write every data directory that has a non-zero size."""
    out.open_scope("Data directories", ScopeType.ARRAY)
    count = len(pe.directories)
    if 0 < count <= MAX_DIRECTORIES:
        for directory in pe.directories:
            if directory.size:
                out.open_scope("Directory", ScopeType.OBJECT)
                out.output(
                    DIRECTORY_NAMES[directory.index],
                    f"{_hex(directory.virtual_address)} ({directory.size} bytes)",
                )
                out.close_scope()
    out.close_scope()


def render_sections(out: Output, pe: PEFile) -> None:
    """Write the section table with the names of each section's flags."""
    out.open_scope("Sections", ScopeType.ARRAY)
    count = len(pe.sections)
    if 0 < count <= MAX_SECTIONS:
        for section in pe.sections:
            out.open_scope("Section", ScopeType.OBJECT)
            out.output("Name", section.name)
            out.output(
                "Virtual Size", f"{_hex(section.virtual_size)} ({section.virtual_size} bytes)"
            )
            out.output("Virtual Address", _hex(section.virtual_address))
            out.output(
                "Size Of Raw Data",
                f"{_hex(section.size_of_raw_data)} ({section.size_of_raw_data} bytes)",
            )
            out.output("Pointer To Raw Data", _hex(section.pointer_to_raw_data))
            out.output("Number Of Relocations", str(section.number_of_relocations))
            out.output("Characteristics", _hex(section.characteristics))
            out.open_scope("Characteristic Names", ScopeType.ARRAY)
            for flag, description in SECTION_FLAGS:
                if section.characteristics & flag:
                    out.output(None, description)
            out.close_scope()
            out.close_scope()
    out.close_scope()


def _render_imports(out: Output, pe: PEFile) -> None:
    out.open_scope("Imported functions", ScopeType.ARRAY)
    for dll in _read_imports(pe):
        out.open_scope("Library", ScopeType.OBJECT)
        out.output("Name", dll.name)
        out.open_scope("Functions", ScopeType.ARRAY)
        for func in dll.functions:
            out.open_scope("Function", ScopeType.OBJECT)
            if func.ordinal:
                out.output("Ordinal", str(func.ordinal))
            else:
                out.output("Hint", f"0x{func.hint:x}")
                out.output("Name", func.name)
            out.close_scope()
        out.close_scope()
        out.close_scope()
    out.close_scope()


def _render_exports(out: Output, pe: PEFile) -> None:
    out.open_scope("Exported functions", ScopeType.ARRAY)
    name, functions = _read_exports(pe)
    has_library = name is not None or bool(functions)
    if has_library:
        out.open_scope("Library", ScopeType.OBJECT)
        out.output("Name", name)
    if functions:
        out.open_scope("Functions", ScopeType.ARRAY)
    for func in functions:
        if not func.address:
            continue
        out.open_scope("Function", ScopeType.OBJECT)
        out.output("Ordinal", str(func.ordinal))
        out.output("Address", _hex(func.address))
        out.output("Hint", f"0x{func.hint:x}")
        if func.fwd_name is not None:
            out.output("Name", f"{func.name or ''} -> {func.fwd_name}")
        else:
            out.output("Name", func.name)
        out.close_scope()
    if functions:
        out.close_scope()
    if has_library:
        out.close_scope()
    out.close_scope()


def _warn(message: str) -> None:
    sys.stderr.write(f"WARNING: {message}\n")


def render(out: Output, pe: PEFile, options: Options) -> None:
    """Write the parts of ``pe`` selected by ``options`` as one document."""
    is_exec = bool(pe.coff.characteristics & IMAGE_FILE_EXECUTABLE_IMAGE)
    headers = options.all_headers or options.all

    out.open_document()

    if options.dos or headers:
        render_dos_header(out, pe.dos)

    if options.coff or headers:
        render_coff_header(out, pe)

    if options.opt or headers:
        if pe.optional is not None:
            render_optional_header(out, pe.optional)
        elif is_exec:
            _warn("unable to read Optional (Image) file header")

    has_directories = bool(pe.directories)
    directories_warned = False
    for wanted, renderer in (
        (options.dirs, render_directories),
        (options.imports, _render_imports),
        (options.exports, _render_exports),
    ):
        if not (wanted or options.all):
            continue
        if has_directories:
            renderer(out, pe)
        elif is_exec and not directories_warned:
            _warn("directories not found")
            directories_warned = True

    if options.all_sections or options.all:
        if pe.sections:
            render_sections(out, pe)
        else:
            _warn("unable to read sections")

    out.close_document()


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    out = create_output()
    if not args:
        sys.stdout.write(_usage(out))
        return 1

    out.set_cmdline([PROGRAM, *args])

    try:
        options = parse_options(args, out)
    except getopt.GetoptError:
        sys.stderr.write(f"{PROGRAM}: try '--help' for more information\n")
        return 1
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    if options.show_help:
        sys.stdout.write(_usage(out))
        return 0
    if options.show_version:
        sys.stdout.write(f"{PROGRAM} {TOOLKIT}\n")
        return 0

    try:
        pe = load(args[-1])
    except (OSError, PEFormatError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    render(out, pe, options)
    return 0


if __name__ == "__main__":
    sys.exit(main())