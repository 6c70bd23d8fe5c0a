"""Custom exception hierarchy for DramaForge with helpful error messages."""

from __future__ import annotations

from typing import Any


class DramaForgeError(Exception):
    """Base exception with helpful formatting for all DramaForge errors.

    Provides structured error messages with hints and details to help users
    understand and fix problems.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception with structured error information.

        Args:
            message: Primary error message describing what went wrong
            hint: Optional hint suggesting how to fix the problem
            details: Optional dictionary with additional debugging information
        """
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with hint and details.

        Returns:
            Formatted error string with all available information
        """
        output = f"Error: {self.message}"
        if self.hint:
            output += f"\nHint: {self.hint}"
        if self.details:
            details_str = "\n".join(
                f"  {key}: {value}" for key, value in self.details.items()
            )
            output += f"\nDetails:\n{details_str}"
        return output


class NotFoundError(DramaForgeError):
    """A referenced drama, episode, storyboard, scene, character or task is absent."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class ConfigurationError(DramaForgeError):
    """Invalid settings or unreadable configuration files."""

    pass


class ConfigurationMissingError(DramaForgeError):
    """No active AI service configuration exists for a capability."""

    def __init__(self, service_type: str, model: str | None = None) -> None:
        self.service_type = service_type
        self.model = model
        details: dict[str, Any] = {"service_type": service_type}
        if model:
            details["model"] = model
        super().__init__(
            message=f"No active {service_type} service configuration",
            hint=(
                f"Add a {service_type} configuration with "
                f"'dramaforge config add --type {service_type}' and mark it active"
            ),
            details=details,
        )


class ValidationError(DramaForgeError):
    """Input validation errors with details about what was expected."""

    pass


class ProviderError(DramaForgeError):
    """A provider returned a non-success status or an unusable response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
        provider: str | None = None,
    ) -> None:
        """Initialize provider error.

        Args:
            message: Error message, normally including status code and body
            status_code: HTTP status returned by the provider, if any
            body: Raw response body text
            provider: Provider identifier that raised the error
        """
        self.status_code = status_code
        self.body = body
        self.provider = provider
        details: dict[str, Any] = {}
        if provider:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message=message, details=details or None)


class ParseError(DramaForgeError):
    """Structured data could not be extracted from model output."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        self.raw_text = raw_text
        preview = raw_text[:200] + "..." if len(raw_text) > 200 else raw_text
        super().__init__(
            message=message,
            hint="Check the model output; the raw text is attached to this error",
            details={"raw_text": preview} if raw_text else None,
        )


class GenerationTimeoutError(DramaForgeError):
    """A provider task did not finish within the poll ceiling."""

    def __init__(self, attempts: int, interval: float) -> None:
        self.attempts = attempts
        self.interval = interval
        super().__init__(
            message=f"Generation timed out after {attempts} poll attempts",
            details={"attempts": attempts, "interval_seconds": interval},
        )


class RemoteBackendError(DramaForgeError):
    """The remote backend answered with a non-success status."""

    def __init__(self, method: str, path: str, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            message=f"Remote backend error: {status_code} - {body[:500]}",
            details={"method": method, "path": path, "status_code": status_code},
        )
