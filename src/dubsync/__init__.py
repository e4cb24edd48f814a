"""dubsync - fit synthesized speech to subtitle timing and duck it over a background track."""

__version__ = "0.1.0"
__all__ = ["dub"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "dub":
        from .api import dub

        return dub
    raise AttributeError(f"module 'dubsync' has no attribute {name!r}")
