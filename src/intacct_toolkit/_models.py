from typing import Any, NamedTuple

import httpx


class ErrorEntry(NamedTuple):
    errorno: str
    description: str | None = None
    description2: str | None = None
    correction: str | None = None

    def __str__(self):
        parts = [self.errorno, self.description, self.description2, self.correction]
        return " ".join(part.strip() for part in parts if part and part.strip())


class ExecutionRecord(NamedTuple):
    """One HTTP round trip. ``response`` is None when the transport failed."""

    request: httpx.Request
    response: httpx.Response | None = None
    error: BaseException | None = None


class PageResult(NamedTuple):
    records: list[dict[str, Any]]
    count: int
    total_count: int
    num_remaining: int
    result_id: str | None
    list_type: str | None = None
    report_id: str | None = None
