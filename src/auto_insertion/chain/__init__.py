# Fallback chain — cycle-safe construction, descriptor models, payload codec
"""
Fallback chain module.

Builds the ordered candidate list for one document render and carries it to
view time as an embedded JSON payload.
"""

from .builder import FallbackChainBuilder, build_chain
from .models import ChainDescriptor, ChainEntry
from .payload import embed_payload, read_payload, render_payload

__all__ = [
    "FallbackChainBuilder",
    "build_chain",
    "ChainDescriptor",
    "ChainEntry",
    "embed_payload",
    "read_payload",
    "render_payload",
]
