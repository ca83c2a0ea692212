"""CLI command implementations."""

from .advise import advise, consensus
from .providers import providers
from .validate import validate

__all__ = ["advise", "consensus", "providers", "validate"]
