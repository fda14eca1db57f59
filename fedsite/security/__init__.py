"""Security package for fedsite."""

from .config import (
    allowed_origin,
    configure_cors,
    configure_security_headers,
    validate_input_length,
)

__all__ = [
    "allowed_origin",
    "configure_cors",
    "configure_security_headers",
    "validate_input_length",
]
