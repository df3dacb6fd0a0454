"""Custom exceptions for dependsight with user-friendly error messages."""


class DependsightError(Exception):
    """Base exception with user-friendly message and optional hint.

    Attributes:
        message: The main error message.
        hint: Optional hint for resolving the error.
    """

    def __init__(self, message: str, hint: str = "") -> None:
        """Initialize the exception.

        Args:
            message: The main error message.
            hint: Optional hint for resolving the error.
        """
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation."""
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class ConfigurationError(DependsightError):
    """Invalid configuration or missing input; fatal before any analysis."""

    pass


class ManifestNotFoundError(ConfigurationError):
    """The project has no package.json."""

    def __init__(
        self,
        path: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"package.json not found at {path}" if path else "package.json not found"
        if not hint:
            hint = "Run dependsight from a project root or pass --path."
        super().__init__(message, hint)


class SnapshotNotFoundError(ConfigurationError):
    """The analysis snapshot consumed by the report stage is missing."""

    def __init__(
        self,
        path: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Analysis file not found at {path}" if path else "Analysis file not found"
        if not hint:
            hint = "Run 'dependsight analyze' first to generate the analysis."
        super().__init__(message, hint)


class InvalidSnapshotError(ConfigurationError):
    """The analysis snapshot exists but cannot be loaded."""

    def __init__(
        self,
        path: str = "",
        reason: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Invalid analysis file {path}" if path else "Invalid analysis file"
            if reason:
                message += f": {reason}"
        if not hint:
            hint = "Re-run 'dependsight analyze' to regenerate it."
        super().__init__(message, hint)


class ParseError(DependsightError):
    """Failed to parse a file."""

    pass


class ManifestParseError(ParseError):
    """package.json is not valid JSON or has an unexpected shape."""

    def __init__(
        self,
        path: str = "",
        reason: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Failed to parse {path}" if path else "Failed to parse package.json"
            if reason:
                message += f": {reason}"
        if not hint:
            hint = "Ensure package.json is valid JSON."
        super().__init__(message, hint)


class SourceParseError(ParseError):
    """A source file could not be parsed into a syntax tree."""

    def __init__(
        self,
        filename: str = "",
        reason: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Could not parse {filename}" if filename else "Could not parse source file"
            if reason:
                message += f": {reason}"
        super().__init__(message, hint)


class LookupFailure(DependsightError):
    """A registry, release or changelog lookup failed or returned nothing."""

    pass


class RegistryLookupError(LookupFailure):
    """The package registry had no usable answer for a package."""

    def __init__(
        self,
        package: str,
        reason: str = "",
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Registry lookup failed for {package}"
            if reason:
                message += f": {reason}"
        super().__init__(message, hint)



class RateLimitExceeded(LookupFailure):
    """An API request budget is used up and waiting is not allowed."""

    def __init__(
        self,
        service: str,
        wait_seconds: float = 0.0,
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"{service} rate limit reached"
            if wait_seconds:
                message += f", next request allowed in {wait_seconds:.0f} seconds"
        if not hint:
            hint = "Set GITHUB_TOKEN to raise the GitHub API quota."
        super().__init__(message, hint)
