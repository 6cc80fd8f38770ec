"""Bake static sites with JBake and publish them to Git pages repositories.

This package exposes the CLI entry points used by the ``bakery`` console
script to scaffold a project, render it, and push the baked site or the UI
mock-up to their remote repositories.

Exports
-------
- ``app``: Cyclopts application holding the subcommands.
- ``main``: Convenience function that configures logging and invokes the app.

Examples
--------
>>> from bakery import app
>>> app(["tasks"])  # doctest: +SKIP
initSite
>>> from bakery import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
