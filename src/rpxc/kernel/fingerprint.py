"""Fingerprint models: the digest of a toolchain definition and its sidecar record."""

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .hash_utils import DEFAULT_ALGO, hex_digest, split_prefixed

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_HEX_LENGTHS = {"sha256": 64, "sha1": 40}


class Fingerprint(BaseModel):
    """Digest of a toolchain definition plus the algorithm that produced it.

    Frozen so a computed fingerprint can't drift from the bytes it describes.
    """
    algo: Literal["sha256", "sha1"] = DEFAULT_ALGO
    digest: str = Field(..., description="Lowercase hex digest (without prefix)")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('digest')
    @classmethod
    def validate_digest(cls, v: str) -> str:
        v = v.lower()
        if not _HEX_RE.match(v):
            raise ValueError(f"digest must be hex, got {v!r}")
        return v

    @model_validator(mode='after')
    def validate_length(self) -> 'Fingerprint':
        expected = _HEX_LENGTHS[self.algo]
        if len(self.digest) != expected:
            raise ValueError(
                f"{self.algo} digest must be {expected} hex chars, got {len(self.digest)}"
            )
        return self

    @classmethod
    def parse(cls, value: str) -> 'Fingerprint':
        """Build a Fingerprint from its "<algo>:<hex>" form."""
        algo, digest = split_prefixed(value)
        return cls(algo=algo, digest=digest)

    def __str__(self) -> str:
        return f"{self.algo}:{self.digest}"


def compute_fingerprint(definition: bytes, algo: str = DEFAULT_ALGO) -> Fingerprint:
    """Compute the fingerprint of toolchain definition bytes.

    Pure and deterministic: the same bytes and algorithm always give the
    same fingerprint.

    Raises:
        ValueError: If algo is not one of SUPPORTED_ALGOS
    """
    return Fingerprint(algo=algo, digest=hex_digest(definition, algo))


def _utc_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class FingerprintRecord(BaseModel):
    """Persisted sidecar: which definition was provisioned, as which image."""
    format: Literal["rpxc.fingerprint"] = "rpxc.fingerprint"
    version: str = "0.1"
    definition: str  # file name of the toolchain definition
    fingerprint: Fingerprint
    image: str  # environment handle tag the fingerprint was recorded for
    recorded_at: str = Field(default_factory=_utc_now)  # ISO 8601

    model_config = ConfigDict(extra="forbid")

    @field_validator('recorded_at')
    @classmethod
    def validate_recorded_at(cls, v: str) -> str:
        try:
            datetime.fromisoformat(v.replace('Z', '+00:00'))
        except ValueError as e:
            raise ValueError(f"recorded_at must be ISO 8601 format, got: {v}") from e
        return v
