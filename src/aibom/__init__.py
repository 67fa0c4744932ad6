"""aibom: Detect AI/LLM components in a repository and emit AI Bills of Materials."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
