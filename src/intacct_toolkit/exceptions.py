"""
Exception types raised by intacct-toolkit.

Failures fall into two families so callers can branch without inspecting
messages:

* ``IntacctTransientError`` - network failures and HTTP 5xx responses. These are
  eligible for automatic retry by the request handler.
* ``ResponseException`` - the gateway answered, but reported a failure. These are
  terminal and carry the full list of vendor error entries.
"""

import typing

import httpx

if typing.TYPE_CHECKING:
    from ._models import ErrorEntry, ExecutionRecord


class IntacctException(Exception):
    """Base class for all intacct-toolkit exceptions"""

    history: "list[ExecutionRecord]"

    def __init__(self, *args):
        super().__init__(*args)
        self.history = []


class IntacctTransientError(IntacctException):
    """A failure that may succeed if the same request is sent again"""


class IntacctConnectionError(IntacctTransientError):
    """The HTTP transport failed before a response was received"""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url

    def __str__(self):
        if self.url:
            return f"{self.args[0]} ({self.url})"
        return self.args[0]


class IntacctHttpError(IntacctException):
    """The gateway responded with an unsuccessful HTTP status"""

    message = "Unexpected HTTP status {status_code} for {method} {url_path}"

    def __init__(
        self,
        status_code: int,
        method: str,
        url_path: str,
        content: str,
        reason_phrase: str = "",
    ):
        super().__init__(status_code, method, url_path, content)
        self.status_code = status_code
        self.method = method
        self.url_path = url_path
        self.content = content
        self.reason_phrase = reason_phrase

    def __str__(self):
        formatted = self.message.format(
            status_code=self.status_code,
            method=self.method.upper(),
            url_path=self.url_path,
        )
        if self.reason_phrase:
            formatted += f" ({self.reason_phrase})"
        if self.content:
            content = self.content
            if len(content) > 255:
                content = content[:255] + "..."
            formatted += f"\n{content}"
        return formatted

    def __repr__(self):
        return f"{type(self).__name__}({str(self)!r})"


class IntacctClientError(IntacctHttpError):
    message = "Request rejected with HTTP {status_code} for {method} {url_path}"


class IntacctServerError(IntacctHttpError, IntacctTransientError):
    message = "Server error HTTP {status_code} for {method} {url_path}"


class ResponseException(IntacctException):
    """The gateway reported a failure in the response document"""

    errors: "list[ErrorEntry]"

    def __init__(self, message: str, errors: "typing.Iterable[ErrorEntry]" = ()):
        super().__init__(message)
        self.message = message
        self.errors = list(errors)

    def __str__(self):
        if not self.errors:
            return self.message
        return self.message + ": " + "; ".join(str(error) for error in self.errors)


class AuthenticationFailed(ResponseException):
    """The control or authentication block of a response reported failure"""


class ControlFailed(AuthenticationFailed):
    """
    The control block reported failure, usually rejected sender credentials.
    Clients never re-authenticate on it.
    """


class ResultException(ResponseException):
    """A function result came back with status failure"""


class QueryLimitExceeded(ResultException):
    """A paged read would return more records than the configured ceiling"""

    def __init__(self, total_count: int, max_total_count: int, received: int | None = None):
        if received is None:
            message = (
                f"Query result totalcount of {total_count} exceeds "
                f"max_total_count parameter of {max_total_count}"
            )
        else:
            message = (
                f"Query returned {received} records, more than the "
                f"max_total_count parameter of {max_total_count}"
            )
        super().__init__(message)
        self.total_count = total_count
        self.max_total_count = max_total_count
        self.received = received


class MalformedResponseError(IntacctException):
    """The response document is not shaped the way the gateway documents it"""


def raise_for_status(response: httpx.Response):
    """
    Raise the matching IntacctHttpError subclass for an unsuccessful response.
    Successful and informational responses pass through untouched.
    """
    if response.is_success:
        return
    status = response.status_code
    if 500 <= status < 600:
        exc_cls: type[IntacctHttpError] = IntacctServerError
    elif 400 <= status < 500:
        exc_cls = IntacctClientError
    else:
        exc_cls = IntacctHttpError
    raise exc_cls(
        status,
        response.request.method,
        response.url.path,
        response.text,
        response.reason_phrase,
    )
