"""Hash utilities for toolchain definitions.

Digests are always rendered as "<algo>:<lowercase hex>" so a stored value
names the algorithm that produced it.

Key rules:
- Input is hashed as raw bytes, no normalization
- str input is encoded as UTF-8 first
- Only algorithms in SUPPORTED_ALGOS are accepted
"""

import hashlib
from pathlib import Path
from typing import Tuple, Union

DEFAULT_ALGO = "sha256"

# sha1 matches what `sha1sum` recorded for older toolchain checkouts.
SUPPORTED_ALGOS = ("sha256", "sha1")


def _check_algo(algo: str) -> str:
    if algo not in SUPPORTED_ALGOS:
        raise ValueError(
            f"Unsupported digest algorithm: {algo!r}. "
            f"Supported: {', '.join(SUPPORTED_ALGOS)}"
        )
    return algo


def hex_digest(content: Union[str, bytes], algo: str = DEFAULT_ALGO) -> str:
    """Compute the bare hex digest of content.

    Args:
        content: Content as string or bytes
        algo: Digest algorithm name

    Returns:
        Lowercase hex digest without prefix

    Raises:
        ValueError: If algo is not supported
    """
    _check_algo(algo)
    if isinstance(content, str):
        content_bytes = content.encode('utf-8')
    else:
        content_bytes = content
    return hashlib.new(algo, content_bytes).hexdigest()


def hash_content(content: Union[str, bytes], algo: str = DEFAULT_ALGO) -> str:
    """Compute a prefixed digest of content (e.g. "sha256:ab12...")."""
    return f"{algo}:{hex_digest(content, algo)}"


def hash_file(path: Union[str, Path], algo: str = DEFAULT_ALGO) -> str:
    """Compute a prefixed digest of a file's bytes."""
    return hash_content(Path(path).read_bytes(), algo)


def split_prefixed(value: str) -> Tuple[str, str]:
    """Split "<algo>:<hex>" into its parts.

    Raises:
        ValueError: If the prefix is missing or the algorithm unsupported
    """
    algo, sep, digest = value.partition(":")
    if not sep or not digest:
        raise ValueError(f"Digest must look like '<algo>:<hex>', got {value!r}")
    return _check_algo(algo), digest.lower()
