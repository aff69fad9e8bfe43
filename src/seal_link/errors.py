"""Exception hierarchy for seal-link."""


class SealLinkError(Exception):
    """Base class for errors that end a run with a failure."""


class ConfigError(SealLinkError):
    """Required configuration is missing or invalid."""


class ApiError(SealLinkError):
    """A request against the Seal API failed or returned an unusable response."""

    def __init__(self, operation: str, message: str, status_code: int | None = None, body: str | None = None) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"[{operation}] {message}")


class LinkError(ApiError):
    """Patching the reference field failed after the files were uploaded."""

    def __init__(self, message: str, file_ids: list[str], status_code: int | None = None, body: str | None = None) -> None:
        self.file_ids = file_ids
        ids = ", ".join(file_ids) or "none"
        super().__init__(
            "patch_reference_field",
            f"{message}. Files were uploaded but not linked (file ids: {ids}); link them manually.",
            status_code=status_code,
            body=body,
        )


class ResolutionError(SealLinkError):
    """The target entity for the pull request could not be determined."""


class NotFoundError(ResolutionError):
    """No entity matched the pull request and template."""


class AmbiguousMatchError(ResolutionError):
    """More than one entity matched the pull request and template."""

    def __init__(self, message: str, entity_ids: list[str]) -> None:
        self.entity_ids = entity_ids
        super().__init__(f"{message} (matching ids: {', '.join(entity_ids)})")


class ProcessingError(SealLinkError):
    """No uploaded file survived processing."""


class ArchiveError(SealLinkError):
    """The codebase archive could not be created."""
