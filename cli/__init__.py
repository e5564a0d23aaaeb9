"""CLI package for querying the TTY sensor hub service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``; the package root stays empty so
# that ``cli.app`` resolves to the module and tests can patch attributes on it.

__all__ = []
