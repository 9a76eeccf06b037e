"""logsmith: changelog generation from git history."""

from __future__ import annotations

__version__ = "0.4.0"
