"""Exception types for extraction errors.

This module defines the exception hierarchy used by the extraction engine.
Two families exist side by side:

1. ExtractionException and its subclasses describe problems with the page
   content or the driver (a missing URL, an unusable selector, a broken
   driver file). Inside the engine they are caught per item and turned
   into error strings.
2. FetchError and its subclasses describe failures of the HTML retrieval
   capability (non-2xx status, timeout, network failure, unparseable
   document). They abort the current stage only.
"""

from typing import Any


class ExtractionException(Exception):
    """Base class for extraction problems.

    Drivers make assumptions about a website's structure. When one of
    those assumptions does not hold, the engine raises a subclass of this
    exception internally, carrying enough context to diagnose the issue.
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the problem.
            url: The page URL being processed when the problem occurred.
            context: Optional dict of additional context (selector, index...).
        """
        self.message = message
        self.url = url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        if self.url:
            parts.append(f"URL: {self.url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class InvalidUrlError(ExtractionException, ValueError):
    """Raised when an href cannot be turned into an absolute http(s) URL.

    Attributes:
        href: The raw href value.
        base_url: The base URL it was resolved against.
    """

    def __init__(self, href: str, base_url: str, reason: str) -> None:
        self.href = href
        self.base_url = base_url
        super().__init__(
            f"Cannot resolve '{href}' against '{base_url}': {reason}",
            context={"href": href, "base_url": base_url},
        )


class SelectorSyntaxError(ExtractionException):
    """A selector string that could not be compiled or evaluated.

    Never raised across the selector evaluator boundary; the evaluator
    collapses it into an empty match list and keeps it for logging only.

    Attributes:
        selector: The offending selector string.
    """

    def __init__(self, selector: str, reason: str) -> None:
        self.selector = selector
        super().__init__(
            f"Invalid selector '{selector}': {reason}",
            context={"selector": selector},
        )


class ItemExtractionError(ExtractionException):
    """Raised when a single entry or sub-entry cannot be built.

    Attributes:
        index: 1-based position of the item in the matched sequence.
        kind: "Entry" or "Sub-entry".
        reason: Short description of what was missing.
    """

    def __init__(self, kind: str, index: int, reason: str, url: str = "") -> None:
        self.kind = kind
        self.index = index
        self.reason = reason
        super().__init__(
            f"{kind} {index}: {reason}",
            url=url,
            context={"kind": kind, "index": index},
        )


class DriverConfigError(ExtractionException, ValueError):
    """Raised when a driver definition fails validation.

    This is an input error and is allowed to propagate to the caller.
    """

    def __init__(self, message: str, source: str = "") -> None:
        self.source = source
        super().__init__(
            message, context={"source": source} if source else None
        )


class FetchError(Exception):
    """Raised when HTML retrieval fails.

    Covers non-2xx responses, network failures and timeouts. The engine
    treats it as fatal to the current stage but never to the caller.

    Attributes:
        url: The URL that could not be fetched.
        message: Human-readable error message.
    """

    def __init__(self, url: str, message: str | None = None) -> None:
        self.url = url
        self.message = message or f"Failed to fetch {url}"
        super().__init__(self.message)


class HTTPStatusFetchError(FetchError):
    """Raised when the server answers with a non-2xx status code.

    Attributes:
        status_code: The status code received.
    """

    def __init__(self, url: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code} from {url}")


class FetchTimeoutError(FetchError):
    """Raised when a request takes longer than the configured timeout.

    Attributes:
        timeout_seconds: The timeout duration in seconds.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            url, f"Request to {url} timed out after {timeout_seconds}s"
        )


class DocumentParseError(FetchError):
    """Raised when fetched content cannot be parsed as an HTML document at all."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(url, f"Could not parse HTML from {url}: {reason}")
