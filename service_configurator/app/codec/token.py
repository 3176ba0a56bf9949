"""
Configuration token codec.

A token is the base64url (unpadded) encoding of compact, key-sorted JSON:

    {"activeTier": "<tier>", "selections": {"<tier>": {"<itemId>": <value>}}}

Identical states always produce identical tokens. The catalog is never part
of the token and selections are not checked against one here; the selection
store's mutation rules do that on restore.
"""

import base64
import binascii
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from shared.errors import DecodeError
from shared.logging import get_logger
from ..catalog.models import TIER_NAMES

_B64_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

TokenValue = Optional[Union[StrictBool, StrictInt, StrictFloat, StrictStr]]


class TokenPayload(BaseModel):
    """Wire shape of a configuration token."""

    model_config = ConfigDict(extra="forbid")

    active_tier: StrictStr = Field(alias="activeTier")
    selections: Dict[StrictStr, Dict[StrictStr, TokenValue]]

    @field_validator("active_tier")
    @classmethod
    def _known_active_tier(cls, value: str) -> str:
        if value not in TIER_NAMES:
            raise ValueError(f"unknown tier '{value}'")
        return value

    @field_validator("selections")
    @classmethod
    def _known_tiers(cls, value: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        unknown = [tier for tier in value if tier not in TIER_NAMES]
        if unknown:
            raise ValueError(f"unknown tier(s) {unknown}")
        for tier_values in value.values():
            for item_value in tier_values.values():
                if isinstance(item_value, float) and not math.isfinite(item_value):
                    raise ValueError("selection values must be finite")
        return value


@dataclass
class ConfigurationState:
    """Decoded token: active tier plus every tier's selections."""
    active_tier: str
    selections: Dict[str, Dict[str, Any]]


class StateCodec:
    """Encodes and decodes configuration tokens."""

    def __init__(self):
        self.logger = get_logger("configurator.state_codec")

    def encode(self, active_tier: str, selections: Mapping[str, Mapping[str, Any]]) -> str:
        """Serialize state to a URL-safe token."""
        payload = {
            "activeTier": active_tier,
            "selections": {tier: dict(values) for tier, values in selections.items()},
        }
        document = json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False
        )
        return base64.urlsafe_b64encode(document.encode("utf-8")).decode("ascii").rstrip("=")

    def decode(self, token: Any) -> ConfigurationState:
        """Parse a token; any malformation raises ``DecodeError``."""
        if not isinstance(token, str) or not token:
            raise DecodeError("Token must be a non-empty string")
        if not set(token) <= _B64_ALPHABET:
            raise DecodeError("Token contains characters outside the base64url alphabet")

        try:
            raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
        except (binascii.Error, ValueError) as e:
            raise DecodeError("Token is not valid base64url", details={"error": str(e)}) from e

        try:
            document = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise DecodeError("Token payload is not UTF-8", details={"error": str(e)}) from e
        except (ValueError, RecursionError) as e:
            raise DecodeError("Token payload is not valid JSON", details={"error": str(e)}) from e

        try:
            payload = TokenPayload.model_validate(document)
        except PydanticValidationError as e:
            raise DecodeError(
                "Token payload has the wrong shape",
                details={"errors": [err["msg"] for err in e.errors()]}
            ) from e

        self.logger.debug("Token decoded", active_tier=payload.active_tier)
        return ConfigurationState(active_tier=payload.active_tier, selections=payload.selections)
