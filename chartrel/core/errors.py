"""Process exit codes.

Every fatal release error is mapped onto one of these codes by the CLI.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the release command.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad flags, missing pages branch, bad remote url)
    - 2: Environment error (helm or git missing)
    - 3: Build error (chart packaging or signing failed)
    - 4: Network error (release registry unreachable or rejecting)
    - 5: I/O error (chart discovery, git, index file)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
