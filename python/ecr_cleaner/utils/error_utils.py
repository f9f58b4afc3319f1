"""
Error types and actionable error messages.

Every component boundary raises a CleanerError subclass tagged with an
ErrorKind. The lower-level exception that caused it is kept both as
``source`` and as ``__cause__`` so tracebacks show the whole chain.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    RESOURCE = "resource"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ErrorKind(Enum):
    """Which component boundary an error crossed"""
    INITIALIZATION = "InitializationError"
    ENUMERATION = "EnumerationError"
    SCAN = "ScanError"
    AGGREGATION = "AggregationError"
    DELETION = "DeletionError"
    NOTIFICATION = "NotificationError"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class CleanerError(ActionableError):
    """Base class for errors surfaced by the cleaner core"""

    kind: ErrorKind = ErrorKind.INITIALIZATION

    def __init__(self, message: str, source: Optional[BaseException] = None,
                 category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        self.source = source
        details = dict(details or {})
        if source is not None:
            details.setdefault("error_type", type(source).__name__)
            details.setdefault("error_message", _first_line(source))
        super().__init__(f"[{self.kind.value}] {message}", category, suggestions, details)
        if source is not None:
            self.__cause__ = source


class InitializationError(CleanerError):
    """Bad filter/exclusion pattern, bad configuration or bad credentials"""
    kind = ErrorKind.INITIALIZATION


class ConfigValidationError(InitializationError):
    """Raised when configuration validation fails"""


class EnumerationError(CleanerError):
    """Registry listing or describe failure"""
    kind = ErrorKind.ENUMERATION


class ScanError(CleanerError):
    """A reference scanner failed to list or describe its workloads"""
    kind = ErrorKind.SCAN


class AggregationError(CleanerError):
    """Wraps the first EnumerationError or ScanError of an aggregation"""
    kind = ErrorKind.AGGREGATION

    @classmethod
    def wrap(cls, error: BaseException) -> "AggregationError":
        inner_kind = getattr(error, "kind", None)
        return cls(
            f"Aggregation aborted: {getattr(error, 'message', _first_line(error))}",
            source=error,
            category=getattr(error, "category", ErrorCategory.UNKNOWN),
            suggestions=list(getattr(error, "suggestions", [])),
            details={"failed_kind": inner_kind.value if inner_kind else type(error).__name__},
        )

    @property
    def inner_kind(self) -> Optional[ErrorKind]:
        return getattr(self.source, "kind", None)


class DeletionError(CleanerError):
    """A batch delete call failed"""
    kind = ErrorKind.DELETION


class NotificationError(CleanerError):
    """The side-channel notifier failed"""
    kind = ErrorKind.NOTIFICATION


def _first_line(error: BaseException) -> str:
    text = str(error)
    return text.splitlines()[0] if text else type(error).__name__


def _aws_error_code(error: BaseException) -> str:
    response = getattr(error, "response", None) or {}
    return response.get("Error", {}).get("Code", "")


def create_aws_error(error_cls: Type[CleanerError], operation: str, error: BaseException,
                     profile_name: Optional[str] = None, region: Optional[str] = None) -> CleanerError:
    """Create an actionable error of the given kind for an AWS API failure"""
    code = _aws_error_code(error)
    error_str = str(error).lower()

    suggestions = [
        "Verify AWS credentials are configured (aws configure)",
        f"Check the IAM policy allows '{operation}'",
    ]
    if profile_name:
        suggestions.insert(0, f"Run 'aws sts get-caller-identity --profile {profile_name}' to test the profile")

    if code in ("AccessDenied", "AccessDeniedException", "UnauthorizedOperation"):
        category = ErrorCategory.PERMISSION
        suggestions.insert(0, f"Grant '{operation}' to the identity used by this profile")
    elif code in ("ExpiredToken", "ExpiredTokenException", "UnrecognizedClientException",
                  "InvalidClientTokenId") or "credentials" in error_str:
        category = ErrorCategory.AUTHENTICATION
        suggestions.insert(0, "Refresh the session (aws sso login) or rotate the access keys")
    elif code in ("ThrottlingException", "TooManyRequestsException", "Throttling"):
        category = ErrorCategory.NETWORK
        suggestions.insert(0, "Lower concurrency.max_tasks in the configuration")
    elif code.endswith("NotFoundException") or code.endswith("NotFound"):
        category = ErrorCategory.RESOURCE
    elif "connect" in error_str or "endpoint" in error_str or "timed out" in error_str:
        category = ErrorCategory.CONNECTION
        suggestions.insert(0, "Check network connectivity to the AWS endpoint")
    else:
        category = ErrorCategory.UNKNOWN

    details: Dict[str, Any] = {"operation": operation}
    if code:
        details["error_code"] = code
    if profile_name:
        details["profile"] = profile_name
    if region:
        details["region"] = region

    return error_cls(
        f"AWS operation failed: {operation}",
        source=error,
        category=category,
        suggestions=suggestions,
        details=details,
    )


def create_config_error(field: str, value: Any, reason: str) -> ConfigValidationError:
    """Create actionable error for configuration validation failures"""
    suggestions = [
        f"Check the '{field}' value in the configuration file",
        "Verify the value matches the expected format",
        "Run the 'init --stdout' command to see an example configuration",
    ]

    if "pattern" in field.lower() or "excludes" in field.lower():
        suggestions.insert(1, "Glob patterns support '*', '?', closed '[...]' character classes "
                                  "and '**' as a whole path component")
    elif "days" in field.lower() or "max_" in field.lower():
        suggestions.insert(1, "Value must be a non-negative integer")

    return ConfigValidationError(
        f"Configuration error: Invalid value for '{field}'",
        category=ErrorCategory.CONFIGURATION,
        suggestions=suggestions,
        details={
            "field": field,
            "value": value,
            "reason": reason,
        },
    )
