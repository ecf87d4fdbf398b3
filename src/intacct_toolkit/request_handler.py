import time
from collections.abc import Iterable

import httpx

from ._models import ExecutionRecord
from .exceptions import (
    IntacctConnectionError,
    IntacctException,
    IntacctServerError,
    IntacctTransientError,
    raise_for_status,
)
from .functions.base import AbstractFunction, Content
from .logger import getLogger, redact_xml
from .xml.request import RequestConfig, build_request
from .xml.response import AsynchronousResponse, SynchronousResponse

LOGGER = getLogger("request")

REQUEST_CONTENT_TYPE = "x-intacct-xml-request"
DEFAULT_MAX_RETRIES = 5
DEFAULT_NO_RETRY_SERVER_ERROR_CODES = (524,)
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_TIMEOUT = 300.0


class RequestHandler:
    """
    Sends one request document to the gateway, retrying transient failures.

    Transport errors and HTTP 5xx responses are retried up to ``max_retries``
    times with an exponential delay, except for the status codes listed in
    ``no_retry_server_error_codes`` (524 by default: the gateway timed out
    while the request may still be processing, so it is not safe to resend).
    Every attempt is recorded in ``history``.
    """

    http_client: httpx.Client
    max_retries: int
    no_retry_server_error_codes: frozenset[int]
    retry_delay: float
    history: list[ExecutionRecord]

    def __init__(
        self,
        http_client: httpx.Client,
        max_retries: int = DEFAULT_MAX_RETRIES,
        no_retry_server_error_codes: Iterable[int] = DEFAULT_NO_RETRY_SERVER_ERROR_CODES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        if not isinstance(max_retries, int) or isinstance(max_retries, bool):
            raise TypeError("max_retries must be an int")
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        codes = frozenset(no_retry_server_error_codes)
        for code in codes:
            if not 500 <= code <= 599:
                raise ValueError(f"no_retry_server_error_codes must be 5xx codes, got {code}")
        self.http_client = http_client
        self.max_retries = max_retries
        self.no_retry_server_error_codes = codes
        self.retry_delay = retry_delay
        self.history = []

    def execute_synchronous(
        self,
        config: RequestConfig,
        content: Content | AbstractFunction | list[AbstractFunction],
    ) -> SynchronousResponse:
        if config.policy_id:
            config = config._replace(policy_id=None)
        body = build_request(config, content)
        return self._send_and_parse(config, body, SynchronousResponse)

    def execute_asynchronous(
        self,
        config: RequestConfig,
        content: Content | AbstractFunction | list[AbstractFunction],
    ) -> AsynchronousResponse:
        if not config.policy_id:
            raise ValueError(
                'Required "policy_id" key not supplied in params for asynchronous request'
            )
        body = build_request(config, content)
        return self._send_and_parse(config, body, AsynchronousResponse)

    def _send_and_parse(self, config: RequestConfig, body: bytes, response_cls):
        self.history = []
        try:
            response = self.send_with_retries(config.endpoint.url, body)
            parsed = response_cls(response.content)
        except IntacctException as e:
            e.history = list(self.history)
            raise
        parsed.history = list(self.history)
        return parsed

    def send_with_retries(self, url: str, body: bytes) -> httpx.Response:
        """
        POST ``body`` to ``url`` and return the first non-transient response.

        Raises:
            IntacctClientError: on HTTP 4xx, without retrying.
            IntacctServerError: on an excluded 5xx, or when every attempt ended in 5xx.
            IntacctConnectionError: when every attempt ended in a transport error.
        """
        LOGGER.debug("Request to %s:\n%s", url, redact_xml(body))
        last_error: IntacctTransientError | None = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.retry_delay * 2 ** (attempt - 1)
                LOGGER.warning(
                    "Retrying request (attempt %d of %d) in %.2fs after: %s",
                    attempt + 1,
                    self.max_retries + 1,
                    delay,
                    last_error,
                )
                if delay > 0:
                    time.sleep(delay)

            request = self.http_client.build_request(
                "POST",
                url,
                content=body,
                headers={"Content-Type": REQUEST_CONTENT_TYPE, "Accept-Encoding": "gzip"},
            )
            try:
                response = self.http_client.send(request)
            except httpx.TransportError as e:
                self.history.append(ExecutionRecord(request, None, e))
                last_error = IntacctConnectionError(str(e) or type(e).__name__, url)
                last_error.__cause__ = e
                continue

            self.history.append(ExecutionRecord(request, response))
            LOGGER.debug(
                "Response %d from %s:\n%s", response.status_code, url, redact_xml(response.text)
            )
            if (
                response.is_server_error
                and response.status_code not in self.no_retry_server_error_codes
            ):
                try:
                    raise_for_status(response)
                except IntacctServerError as e:
                    last_error = e
                continue

            raise_for_status(response)
            return response

        assert last_error is not None
        raise last_error
