"""
willforge: incremental will-document synthesis.

Walks a testator through staged collection, extracts facts from free-form
conversation, merges them monotonically and renders a live will preview.
"""

__version__ = "0.1.0"

from willforge.config import get_settings

__all__ = ["get_settings", "__version__"]
