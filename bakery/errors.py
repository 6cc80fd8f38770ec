"""Exception base shared by every bakery workflow.

Each component raises its own subclass (configuration, staging, publishing,
baking) so the CLI can report a failed flow with a single message while
callers that care about the category can still catch it precisely.
"""

from __future__ import annotations


class BakeryError(RuntimeError):
    """Base class for errors that abort a bakery flow."""


__all__ = ["BakeryError"]
