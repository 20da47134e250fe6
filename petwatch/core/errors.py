"""Error taxonomy shared by core and shell.

Permission denials are terminal for the feature they affect. Store failures
are transient and leave the in-memory working set untouched. Duplicate
submissions are reported separately from generic store failures.
"""


class PetwatchError(Exception):
    """Base class for all petwatch errors."""


class PermissionDeniedError(PetwatchError):
    """A device permission (location, notifications, photos) was denied."""

    def __init__(self, permission: str, message: str | None = None) -> None:
        self.permission = permission
        super().__init__(message or f"Permission denied: {permission}")


class LocationUnavailableError(PetwatchError):
    """The location provider could not produce a position right now."""


class StoreError(PetwatchError):
    """A read or write against the sighting store failed."""


class DuplicateSubmissionError(PetwatchError):
    """The same device already reported a sighting with this name."""

    def __init__(self, name: str, device_id: str) -> None:
        self.name = name
        self.device_id = device_id
        super().__init__(
            f"Sighting '{name}' was already reported from this device"
        )


class ValidationError(PetwatchError):
    """A sighting report is missing required fields."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("; ".join(problems))
