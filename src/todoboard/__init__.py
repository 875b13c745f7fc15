"""todoboard - personal todo board with optimistic client-side sync."""

__version__ = "0.1.0"


def get_version() -> str:
    """Return the installed todoboard version."""
    return __version__
