"""Fingerprint store: persisted sidecar record and the staleness gate.

The store owns exactly one record. Storage is injectable: FileBackend keeps
the record next to the toolchain definition, MemoryBackend keeps it in the
process (tests, dry runs).

Concurrent writers are not supported. Two processes provisioning the same
definition at once race on the record; callers that need that must
serialize externally.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from rpxc._internal.atomic_io import atomic_write_bytes
from rpxc._internal.canonical_json import canonical_dumps
from rpxc.errors import PersistFailed

from .fingerprint import Fingerprint, FingerprintRecord, compute_fingerprint
from .hash_utils import DEFAULT_ALGO


class StorageBackend:
    """Byte storage for a single record."""

    def read(self) -> Optional[bytes]:
        """Return the stored bytes, or None if nothing was ever written."""
        raise NotImplementedError

    def write(self, data: bytes) -> None:
        """Replace the stored bytes. Readers never observe a partial write."""
        raise NotImplementedError

    def delete(self) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class FileBackend(StorageBackend):
    """Record stored as a file, replaced atomically on every write."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[bytes]:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, data: bytes) -> None:
        atomic_write_bytes(self.path, data)

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)

    def describe(self) -> str:
        return str(self.path)


class MemoryBackend(StorageBackend):
    """In-process record storage."""

    def __init__(self, data: Optional[bytes] = None):
        self.data = data
        self.writes = 0

    def read(self) -> Optional[bytes]:
        return self.data

    def write(self, data: bytes) -> None:
        self.data = bytes(data)
        self.writes += 1

    def delete(self) -> None:
        self.data = None


def record_path_for(definition_path: Path) -> Path:
    """Sidecar location for a definition: `.<name>.fingerprint.json` beside it."""
    definition_path = Path(definition_path)
    return definition_path.with_name(f".{definition_path.name}.fingerprint.json")


class FingerprintStore:
    """Computes, loads and persists the fingerprint of one toolchain definition."""

    def __init__(
        self,
        backend: StorageBackend,
        definition_name: str = "Dockerfile",
        algo: str = DEFAULT_ALGO,
    ):
        self.backend = backend
        self.definition_name = definition_name
        self.algo = algo

    @classmethod
    def for_definition(cls, definition_path: Path, algo: str = DEFAULT_ALGO) -> "FingerprintStore":
        """File-backed store whose record sits next to the definition."""
        definition_path = Path(definition_path)
        return cls(
            FileBackend(record_path_for(definition_path)),
            definition_name=definition_path.name,
            algo=algo,
        )

    def compute_fingerprint(self, definition: bytes) -> Fingerprint:
        return compute_fingerprint(definition, self.algo)

    def load_record(self) -> Optional[FingerprintRecord]:
        """Load the stored record.

        Returns None when the record was never written or cannot be used:
        unreadable file, invalid JSON, or a record that fails validation.
        An unusable record reads as stale, which only costs a rebuild.
        """
        try:
            raw = self.backend.read()
        except OSError:
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw.decode("utf-8"))
            return FingerprintRecord(**data)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError, TypeError):
            return None

    def load_stored_fingerprint(self) -> Optional[Fingerprint]:
        record = self.load_record()
        return record.fingerprint if record is not None else None

    def is_stale(self, definition: bytes) -> bool:
        """True if no fingerprint is stored or it differs from the definition's."""
        stored = self.load_stored_fingerprint()
        if stored is None:
            return True
        return stored != self.compute_fingerprint(definition)

    def persist(self, fingerprint: Fingerprint, image: str = "") -> FingerprintRecord:
        """Overwrite the stored record with fingerprint.

        Args:
            fingerprint: Fingerprint of the definition that was provisioned
            image: Environment handle tag the fingerprint belongs to

        Returns:
            The record that was written

        Raises:
            PersistFailed: If the write fails
        """
        record = FingerprintRecord(
            definition=self.definition_name,
            fingerprint=fingerprint,
            image=image,
        )
        payload = (canonical_dumps(record.model_dump(mode="json")) + "\n").encode("utf-8")
        try:
            self.backend.write(payload)
        except OSError as e:
            raise PersistFailed(
                f"Could not write fingerprint record to {self.backend.describe()}: {e}"
            ) from e
        return record

    def clear(self) -> None:
        """Forget the stored fingerprint so the next check reads as stale."""
        try:
            self.backend.delete()
        except OSError as e:
            raise PersistFailed(
                f"Could not remove fingerprint record {self.backend.describe()}: {e}"
            ) from e
