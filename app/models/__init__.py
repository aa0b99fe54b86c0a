from .tables import build_metadata

__all__ = [
    "build_metadata",
]
