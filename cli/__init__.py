"""CLI package for interacting with the HACCP temperature chart service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application is ``cli.app.app``; the package only resolves the
# module so tests can patch attributes on ``cli.app``.

__all__ = []
