"""
Codec package: URL-safe configuration tokens for sharable links.
"""

from .token import ConfigurationState, StateCodec, TokenPayload

__all__ = ["ConfigurationState", "StateCodec", "TokenPayload"]
