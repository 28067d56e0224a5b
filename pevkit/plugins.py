"""Plugin registry: plugins hook into the output API when loaded."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TextIO

from .csv_format import CsvFormat
from .html_format import HtmlFormat
from .json_format import JsonFormat
from .output import Format, Output, OutputError
from .text_format import TextFormat
from .xml_format import XmlFormat


class PluginError(Exception):
    """Raised when a plugin cannot be loaded."""


@dataclass
class Plugin:
    """A plugin's entry points.

    ``initialize`` and ``shutdown`` are required; ``loaded`` and ``unloaded``
    are optional. ``loaded`` and ``initialize`` report failure by returning a
    negative number.
    """

    name: str
    initialize: Callable[[Any], int | None]
    shutdown: Callable[[], None]
    loaded: Callable[[], int | None] | None = None
    unloaded: Callable[[], None] | None = None


def _failed(result: int | None) -> bool:
    return result is not None and result < 0


class PluginManager:
    """Loads plugins against an API object and unloads them in reverse order."""

    def __init__(self, api: Any) -> None:
        self.api = api
        self._loaded: list[Plugin] = []

    def __len__(self) -> int:
        return len(self._loaded)

    @property
    def plugins(self) -> list[Plugin]:
        """Loaded plugins, most recently loaded first."""
        return list(reversed(self._loaded))

    def load(self, plugin: Plugin) -> None:
        """Run a plugin's load and initialize hooks and keep it loaded."""
        if not callable(plugin.initialize) or not callable(plugin.shutdown):
            raise PluginError(f"plugins: {plugin.name} is incompatible with this version.")
        if plugin.loaded is not None and _failed(plugin.loaded()):
            raise PluginError(f"plugins: {plugin.name} didn't load correctly")
        if _failed(plugin.initialize(self.api)):
            raise PluginError(f"plugins: {plugin.name} didn't initialize correctly")
        self._loaded.append(plugin)

    def load_all(self, plugins: Iterable[Plugin]) -> int:
        """Load each plugin in turn, stopping at the first failure."""
        count = 0
        for plugin in plugins:
            self.load(plugin)
            count += 1
        return count

    def unload_all(self) -> None:
        """Shut down and unload every plugin, newest first."""
        while self._loaded:
            plugin = self._loaded[-1]
            plugin.shutdown()
            if plugin.unloaded is not None:
                plugin.unloaded()
            self._loaded.pop()


def format_plugin(fmt: Format) -> Plugin:
    """A plugin that registers ``fmt`` with the output API while loaded."""
    state: dict[str, Output] = {}

    def initialize(api: Output) -> int:
        try:
            api.register_format(fmt)
        except OutputError:
            return -1
        state["api"] = api
        return 0

    def shutdown() -> None:
        api = state.pop("api", None)
        if api is not None:
            api.unregister_format(fmt)

    return Plugin(name=fmt.name, initialize=initialize, shutdown=shutdown)


def builtin_plugins() -> list[Plugin]:
    """Fresh plugins for every built-in output format."""
    formats: list[Format] = [CsvFormat(), HtmlFormat(), JsonFormat(), TextFormat(), XmlFormat()]
    return [format_plugin(fmt) for fmt in formats]


def create_output(stream: TextIO | None = None) -> Output:
    """An :class:`Output` with all built-in formats registered."""
    out = Output(stream)
    PluginManager(out).load_all(builtin_plugins())
    return out