"""Stage codes and exit codes for rpxc.

These constants prevent stringly-typed failure stages and keep the CLI's
exit codes in one place.
"""

from enum import Enum


class StageCode(str, Enum):
    """Stage that failed before the delegated command could run."""

    DEFINITION_UNREADABLE = "DEFINITION_UNREADABLE"
    PROVISIONING_FAILED = "PROVISIONING_FAILED"
    PERSIST_FAILED = "PERSIST_FAILED"
    CONFIG_INVALID = "CONFIG_INVALID"


# Same value docker run uses for failures of its own (as opposed to the
# container's command).
EXIT_SETUP_FAILED = 125
EXIT_INTERRUPTED = 130
EXIT_STALE = 1
