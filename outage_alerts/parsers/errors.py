from __future__ import annotations


class ParseError(ValueError):
    """Raised when an upstream payload does not match any known schedule shape."""
