"""Error taxonomy for stack synchronization."""

from typing import Sequence, Union

# Exit status used after an interrupted run has been restored
INTERRUPTED_EXIT_CODE = 5


class StackError(Exception):
    """Base class for all pygitstack errors."""


class PreconditionViolation(StackError):
    """Required run context is missing. Raised before anything is mutated."""


class InvalidRangeError(PreconditionViolation):
    """Commit list, assignment or trunk/merge-base context is unusable."""


class ExternalCommandFailure(StackError):
    """A git command exited unexpectedly."""

    def __init__(self, command: Union[str, Sequence[str]], output: str = "", status: object = None):
        if not isinstance(command, str):
            command = " ".join(str(part) for part in command)
        self.command = command
        self.output = output
        self.status = status
        message = f"Git command failed: {command}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class HostingApiFailure(StackError):
    """Pull request creation or edit failed or returned no identifier."""


class UserInterrupt(SystemExit):
    """Raised after an interrupted run has been rolled back."""

    def __init__(self) -> None:
        super().__init__(INTERRUPTED_EXIT_CODE)
