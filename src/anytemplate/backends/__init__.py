"""Template backends.

Each backend adapts one native engine. They are loaded on demand through
anytemplate.registry, so an engine that isn't installed only matters to
code that actually selects it.
"""

from anytemplate.backends.base import Backend

__all__ = ["Backend"]
