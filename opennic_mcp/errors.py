"""
Error taxonomy for the OpenNIC filter context server.

Two families of errors exist and they are handled very differently:

1. Dispatch errors (DispatchError) - the request itself is wrong: the
   capability id is unknown or the arguments don't match the declared shape.
   These are raised before any handler runs and surface at the MCP boundary
   as protocol errors.

2. Collaborator errors (CollaboratorError) - the request was fine but a file,
   directory or subprocess let us down. Handlers raise these and the
   dispatcher turns them into an in-band text block, so the client always
   gets a well-formed result.

Anything else is a programming fault and is allowed to propagate.

License: MIT
"""

from typing import Optional


# =============================================================================
# DISPATCH ERRORS (protocol level)
# =============================================================================

class DispatchError(Exception):
    """Base class for errors surfaced to the client as protocol errors."""

    kind = "DispatchError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class UnknownCapability(DispatchError):
    """No resource, tool or prompt is registered under the requested id."""

    kind = "UnknownCapability"

    def __init__(self, capability_kind: str, capability_id: str):
        super().__init__(f"Unknown {capability_kind}: {capability_id}")
        self.capability_kind = capability_kind
        self.capability_id = capability_id


class InvalidArguments(DispatchError):
    """
    Arguments don't satisfy the capability's declared input shape.

    Attributes:
        capability_id: The tool or prompt being invoked
        parameter: Name of the offending parameter
    """

    kind = "InvalidArguments"

    def __init__(self, capability_id: str, parameter: str, reason: str):
        super().__init__(f"Invalid argument '{parameter}' for {capability_id}: {reason}")
        self.capability_id = capability_id
        self.parameter = parameter
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["parameter"] = self.parameter
        return data


# =============================================================================
# COLLABORATOR ERRORS (converted to in-band diagnostics)
# =============================================================================

class CollaboratorError(Exception):
    """Expected, recoverable failure from the filesystem or a subprocess."""


class SourceUnavailable(CollaboratorError):
    """A file a handler needed could not be read."""

    def __init__(self, path, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to read file {path}{detail}")
        self.path = path
        self.cause = cause


class TargetMissing(CollaboratorError):
    """A working directory a handler was pointed at doesn't exist."""

    def __init__(self, path):
        super().__init__(f"Directory not found: {path}")
        self.path = path


class ProcessFailed(CollaboratorError):
    """
    A subprocess exited non-zero or could not be spawned.

    For spawn failures the outcome's exit_code is None and its stderr holds
    the operating system's error text. The message never includes captured
    output; callers render outcome.stdout / outcome.stderr themselves.
    """

    def __init__(self, outcome):
        self.outcome = outcome
        if outcome.exit_code is None:
            message = f"Could not start {outcome.command}: {outcome.stderr.strip()}"
        else:
            message = f"Command failed with exit code {outcome.exit_code}"
        super().__init__(message)

    @property
    def exit_code(self) -> Optional[int]:
        return self.outcome.exit_code

    @property
    def stderr(self) -> str:
        return self.outcome.stderr


class ProcessCancelled(CollaboratorError):
    """The subprocess was terminated because its cancel token fired."""

    def __init__(self, outcome):
        self.outcome = outcome
        super().__init__(
            f"Command cancelled after {outcome.elapsed_ms / 1000:.1f}s: {outcome.command}"
        )
