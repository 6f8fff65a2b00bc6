"""codecollector modules.

Modules:
- core: Reference extraction, symbol resolution, ignore rules and closure traversal
"""

# Lazy import so `import codecollector.modules` stays cheap
def __getattr__(name: str):
    if name == "core":
        from . import core
        return core
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["core"]
