"""Reading the headers, data directories and section table of PE files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from os import PathLike

DOS_MAGIC = 0x5A4D
PE_SIGNATURE = 0x00004550

MAGIC_ROM = 0x107
MAGIC_PE32 = 0x10B
MAGIC_PE64 = 0x20B

MAX_DIRECTORIES = 16
MAX_SECTIONS = 96
SECTION_NAME_SIZE = 8

IMAGE_FILE_DLL = 0x2000
IMAGE_DIRECTORY_ENTRY_DEBUG = 6
IMAGE_DEBUG_TYPE_REPRO = 16

_DOS = struct.Struct("<14H4H2H10HI")
_COFF = struct.Struct("<HHIIIHH")
_ROM = struct.Struct("<HBB8I4II")
_PE32 = struct.Struct("<HBB9I6H4I2H6I")
_PE64 = struct.Struct("<HBB5IQ2I6H4I2H4Q2I")
_DIRECTORY = struct.Struct("<II")
_SECTION = struct.Struct("<8s6I2HI")
_DEBUG_ENTRY = struct.Struct("<IIHHIIII")


class PEFormatError(ValueError):
    """Raised when data is not a well-formed PE file."""


def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise PEFormatError(f"truncated {what}")
    return layout.unpack_from(data, offset)


@dataclass(frozen=True)
class DosHeader:
    e_magic: int
    e_cblp: int
    e_cp: int
    e_crlc: int
    e_cparhdr: int
    e_minalloc: int
    e_maxalloc: int
    e_ss: int
    e_sp: int
    e_csum: int
    e_ip: int
    e_cs: int
    e_lfarlc: int
    e_ovno: int
    e_res: tuple[int, ...]
    e_oemid: int
    e_oeminfo: int
    e_res2: tuple[int, ...]
    e_lfanew: int

    @classmethod
    def _from(cls, data: bytes) -> DosHeader:
        v = _unpack(_DOS, data, 0, "DOS header")
        return cls(*v[:14], tuple(v[14:18]), v[18], v[19], tuple(v[20:30]), v[30])


@dataclass(frozen=True)
class CoffHeader:
    machine: int
    number_of_sections: int
    time_date_stamp: int
    pointer_to_symbol_table: int
    number_of_symbols: int
    size_of_optional_header: int
    characteristics: int


@dataclass(frozen=True)
class OptionalHeader:
    """The optional (image) header; fields a variant lacks are ``None``."""

    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    base_of_data: int | None = None
    base_of_bss: int | None = None
    gpr_mask: int | None = None
    cpr_mask: tuple[int, ...] | None = None
    gp_value: int | None = None
    image_base: int | None = None
    section_alignment: int | None = None
    file_alignment: int | None = None
    major_operating_system_version: int | None = None
    minor_operating_system_version: int | None = None
    major_image_version: int | None = None
    minor_image_version: int | None = None
    major_subsystem_version: int | None = None
    minor_subsystem_version: int | None = None
    win32_version_value: int | None = None
    size_of_image: int | None = None
    size_of_headers: int | None = None
    checksum: int | None = None
    subsystem: int | None = None
    dll_characteristics: int | None = None
    size_of_stack_reserve: int | None = None
    size_of_stack_commit: int | None = None
    size_of_heap_reserve: int | None = None
    size_of_heap_commit: int | None = None
    loader_flags: int | None = None
    number_of_rva_and_sizes: int | None = None

    @property
    def is_rom(self) -> bool:
        return self.magic == MAGIC_ROM

    @property
    def is_pe64(self) -> bool:
        return self.magic == MAGIC_PE64


def _windows_fields(values: tuple) -> dict[str, int]:
    names = (
        "image_base", "section_alignment", "file_alignment",
        "major_operating_system_version", "minor_operating_system_version",
        "major_image_version", "minor_image_version",
        "major_subsystem_version", "minor_subsystem_version",
        "win32_version_value", "size_of_image", "size_of_headers", "checksum",
        "subsystem", "dll_characteristics",
        "size_of_stack_reserve", "size_of_stack_commit",
        "size_of_heap_reserve", "size_of_heap_commit",
        "loader_flags", "number_of_rva_and_sizes",
    )
    return dict(zip(names, values))


def _parse_optional(data: bytes, offset: int) -> tuple[OptionalHeader, int]:
    (magic,) = _unpack(struct.Struct("<H"), data, offset, "optional header")
    if magic == MAGIC_ROM:
        v = _unpack(_ROM, data, offset, "optional header")
        header = OptionalHeader(
            *v[:9], base_of_bss=v[9], gpr_mask=v[10], cpr_mask=tuple(v[11:15]), gp_value=v[15]
        )
        return header, offset + _ROM.size
    if magic == MAGIC_PE32:
        v = _unpack(_PE32, data, offset, "optional header")
        return OptionalHeader(*v[:9], **_windows_fields(v[9:])), offset + _PE32.size
    if magic == MAGIC_PE64:
        v = _unpack(_PE64, data, offset, "optional header")
        return OptionalHeader(*v[:8], **_windows_fields(v[8:])), offset + _PE64.size
    raise PEFormatError(f"unknown optional header magic {magic:#x}")


@dataclass(frozen=True)
class DataDirectory:
    index: int
    virtual_address: int
    size: int


@dataclass(frozen=True)
class SectionHeader:
    raw_name: bytes
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: int

    @property
    def name(self) -> str:
        """The section name, cut at the first NUL."""
        return self.raw_name.split(b"\0", 1)[0].decode("latin-1")


@dataclass
class PEFile:
    """A parsed PE image together with its raw bytes."""

    data: bytes
    dos: DosHeader
    signature: int
    coff: CoffHeader
    optional: OptionalHeader | None
    directories: list[DataDirectory] = field(default_factory=list)
    sections: list[SectionHeader] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_dll(self) -> bool:
        return bool(self.coff.characteristics & IMAGE_FILE_DLL)

    @property
    def is_repro(self) -> bool:
        """Whether the debug directory marks the build as reproducible."""
        if len(self.directories) <= IMAGE_DIRECTORY_ENTRY_DEBUG:
            return False
        debug = self.directories[IMAGE_DIRECTORY_ENTRY_DEBUG]
        if not debug.virtual_address or not debug.size:
            return False
        start = self.rva_to_offset(debug.virtual_address)
        for n in range(debug.size // _DEBUG_ENTRY.size):
            offset = start + n * _DEBUG_ENTRY.size
            if offset + _DEBUG_ENTRY.size > len(self.data):
                break
            if _DEBUG_ENTRY.unpack_from(self.data, offset)[4] == IMAGE_DEBUG_TYPE_REPRO:
                return True
        return False

    def rva_to_offset(self, rva: int) -> int:
        """Translate a relative virtual address into a raw file offset."""
        if rva == 0 or not self.sections:
            return 0
        for section in self.sections:
            size = section.virtual_size or section.size_of_raw_data
            if section.virtual_address <= rva < section.virtual_address + size:
                return rva - section.virtual_address + section.pointer_to_raw_data
        if len(self.sections) == 1:
            only = self.sections[0]
            return rva - only.virtual_address + only.pointer_to_raw_data
        return rva

    def section_for_offset(self, offset: int) -> SectionHeader | None:
        """The first section whose raw data holds ``offset`` (end inclusive)."""
        for section in self.sections:
            start = section.pointer_to_raw_data
            if start <= offset <= start + section.size_of_raw_data:
                return section
        return None


def parse(data: bytes) -> PEFile:
    """Parse ``data`` as a PE image."""
    data = bytes(data)
    dos = DosHeader._from(data)
    if dos.e_magic != DOS_MAGIC:
        raise PEFormatError("not a valid PE file")

    pe_offset = dos.e_lfanew
    (signature,) = _unpack(struct.Struct("<I"), data, pe_offset, "PE signature")
    if signature != PE_SIGNATURE:
        raise PEFormatError("not a valid PE file")

    coff_offset = pe_offset + 4
    coff = CoffHeader(*_unpack(_COFF, data, coff_offset, "COFF header"))
    optional_offset = coff_offset + _COFF.size

    optional: OptionalHeader | None = None
    directories: list[DataDirectory] = []
    if coff.size_of_optional_header:
        optional, dir_offset = _parse_optional(data, optional_offset)
        if optional.number_of_rva_and_sizes is not None:
            count = min(optional.number_of_rva_and_sizes, MAX_DIRECTORIES)
            for index in range(count):
                entry = _unpack(
                    _DIRECTORY, data, dir_offset + index * _DIRECTORY.size, "data directories"
                )
                directories.append(DataDirectory(index, *entry))

    table = optional_offset + coff.size_of_optional_header
    sections = [
        SectionHeader(*_unpack(_SECTION, data, table + n * _SECTION.size, "section table"))
        for n in range(coff.number_of_sections)
    ]

    return PEFile(data, dos, signature, coff, optional, directories, sections)


def load(path: str | PathLike[str]) -> PEFile:
    """Read and parse the PE file at ``path``."""
    with open(path, "rb") as fh:
        return parse(fh.read())