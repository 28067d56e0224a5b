[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pevkit"
version = "0.84.0"
description = "Toolkit for inspecting PE (Portable Executable) files: headers, directories, imports, exports, sections and RVA conversion"
requires-python = ">=3.10"
dependencies = []
keywords = ["pe", "portable-executable", "windows", "binary-analysis", "reverse-engineering"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
readpe = "pevkit.readpe:main"
rva2ofs = "pevkit.rva2ofs:main"

[tool.hatch.build.targets.wheel]
packages = ["pevkit"]

[tool.hatch.build.targets.sdist]
include = ["pevkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
