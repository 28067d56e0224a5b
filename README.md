# pevkit

A small toolkit for looking inside PE (Portable Executable) files, the
format of Windows executables, DLLs and drivers. It runs anywhere Python
3.10 or later does and has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Commands

### readpe

Shows the headers, data directories, imported and exported functions
and section table of a PE file.

```
readpe winzip.exe
readpe --header optional winzip.exe
readpe -f json -S winzip.exe
```

Options:

- `-A`, `--all`: full output (the default)
- `-H`, `--all-headers`: show the DOS, COFF and optional headers
- `-S`, `--all-sections`: show the section headers
- `-f`, `--format <csv|html|json|text|xml>`: change the output format (default: text)
- `-d`, `--dirs`: show the data directories that have a non-zero size
- `-h`, `--header <dos|coff|optional>`: show one header; may be given more than once
- `-i`, `--imports`: show imported functions
- `-e`, `--exports`: show exported functions
- `-V`, `--version`: show the version
- `--help`: show help

Warnings, such as a missing optional header or missing data directories,
are written to standard error.

### rva2ofs

Converts a relative virtual address to a raw file offset.

```
rva2ofs 0x12db cards.dll
```

The RVA may be written in decimal, hexadecimal (`0x`) or octal (leading
`0`). An RVA of zero is rejected as invalid.

## Using it from Python

```python
from pevkit.pe import load

pe = load("cards.dll")
print(hex(pe.rva_to_offset(0x12DB)))

section = pe.section_for_offset(0x400)
print(section.name if section else "[none]")
```

`pevkit.pe.parse` does the same as `load` for bytes already in memory and
raises `PEFormatError` when the data is not a valid PE file. A `PEFile`
carries the `dos`, `coff` and `optional` headers, its `directories` and
its `sections`.

Structured output goes through an `Output` object from `pevkit.output`;
`pevkit.plugins.create_output(stream)` returns one with every built-in
format (csv, html, json, text and xml) registered, ready for
`set_format_by_name`, `open_document`, `open_scope`, `output` and the
matching close calls. The functions in `pevkit.readpe_headers`
(`render_dos_header`, `render_coff_header`, `render_optional_header`) and
`pevkit.readpe.render` write a parsed file to such an `Output`.

## What it does not do

There is no command for searching a file for printable strings; only
`readpe` and `rva2ofs` are installed. Output formats are Python objects
registered with `PluginManager`; nothing is loaded from shared libraries
or plugin directories on disk.