import typing
from collections.abc import Generator, Iterator

from .._models import ExecutionRecord, PageResult
from ..exceptions import IntacctException, MalformedResponseError, QueryLimitExceeded
from ..functions.common import ReadByQuery, ReadMore, ReadReport, ReadView
from ..logger import getLogger

if typing.TYPE_CHECKING:
    from ..client import IntacctClient

LOGGER = getLogger("query")

DEFAULT_MAX_TOTAL_COUNT = 100000

PagedFunction = ReadByQuery | ReadView | ReadReport

_READ_MORE_KWARGS = {
    "resultId": "result_id",
    "object": "object_name",
    "view": "view",
    "reportId": "report_id",
}


class QueryResult:
    """
    Every record of a paged read, in the order the gateway returned them.
    """

    records: list[dict[str, typing.Any]]
    "All records across all pages"
    batches: list[PageResult]
    "The individual pages, first page first"
    total_count: int
    done: bool
    "False only while the pages are still being collected"
    history: list[ExecutionRecord]
    "Every HTTP round trip made across all pages"

    def __init__(self):
        self.records = []
        self.batches = []
        self.total_count = 0
        self.done = False
        self.history = []

    def add_page(self, page: PageResult):
        if not self.batches:
            self.total_count = page.total_count
        self.batches.append(page)
        self.records.extend(page.records)

    def __iter__(self) -> Iterator[dict[str, typing.Any]]:
        return iter(self.records)

    def __len__(self):
        return len(self.records)

    def __getitem__(self, index: int):
        return self.records[index]

    def __repr__(self):
        return (
            f"<QueryResult {len(self.records)} of {self.total_count} records "
            f"in {len(self.batches)} batches>"
        )


class QueryClient:
    """
    Runs the first-page-then-``readMore`` loop for queries, views and reports.

    The whole result set is capped at ``max_total_count`` records. The cap is
    checked against the ``totalcount`` of the first page, so an oversized
    query costs exactly one call, and again against the records received
    after every page.
    """

    client: "IntacctClient"
    max_total_count: int

    def __init__(self, client: "IntacctClient", max_total_count: int = DEFAULT_MAX_TOTAL_COUNT):
        self.client = client
        self.max_total_count = max_total_count

    def iter_pages(
        self,
        function: PagedFunction,
        failure_message: str = "An error occurred trying to get query records",
        max_total_count: int | None = None,
        history: list[ExecutionRecord] | None = None,
    ) -> Generator[PageResult, None, None]:
        """
        Yield each page of ``function``'s result set as it arrives.

        Raises:
            QueryLimitExceeded: before any ``readMore`` when the first page
                reports more than ``max_total_count`` records, or as soon as the
                pages received add up to more than that.
            ResultException: when any page comes back with status failure. An
                expired cursor is not retried.
            MalformedResponseError: when a page cannot be continued, or the
                pages carry more records than the first page's ``totalcount``.
        """
        if max_total_count is None:
            max_total_count = self.max_total_count
        if history is None:
            history = []

        try:
            page = self._read_page(function, failure_message, history)
            if page.total_count > max_total_count:
                raise QueryLimitExceeded(page.total_count, max_total_count)
            LOGGER.debug(
                "First page of %s: %d of %d records, %d remaining",
                page.list_type,
                len(page.records),
                page.total_count,
                page.num_remaining,
            )
            total_count = page.total_count
            received = self._count_received(0, page, total_count, max_total_count)
            yield page

            read_more = None
            while page.num_remaining > 0:
                read_more = self._read_more_function(function, page, read_more)
                page = self._read_page(read_more, failure_message, history)
                received = self._count_received(received, page, total_count, max_total_count)
                LOGGER.debug(
                    "Next page of %s: %d records, %d remaining",
                    page.list_type,
                    len(page.records),
                    page.num_remaining,
                )
                yield page
        except IntacctException as e:
            e.history = list(history)
            raise

    def _read_page(
        self,
        function: PagedFunction | ReadMore,
        failure_message: str,
        history: list[ExecutionRecord],
    ) -> PageResult:
        try:
            response = self.client.execute(function)
        except IntacctException as e:
            history.extend(e.history)
            raise
        history.extend(response.history)
        return response.get_result(0).ensure_status_success(failure_message).to_page()

    @staticmethod
    def _count_received(
        received: int, page: PageResult, total_count: int, max_total_count: int
    ) -> int:
        received += len(page.records)
        if received > max_total_count:
            raise QueryLimitExceeded(total_count, max_total_count, received)
        if received > total_count:
            raise MalformedResponseError(
                f"Received {received} records but the result reported a totalcount of {total_count}"
            )
        return received

    @staticmethod
    def _read_more_function(
        function: PagedFunction, page: PageResult, previous: ReadMore | None
    ) -> ReadMore:
        if page.result_id:
            return ReadMore(result_id=page.result_id)
        if isinstance(function, ReadReport) and page.report_id:
            return ReadMore(report_id=page.report_id)
        if previous is not None:
            # later pages may omit the cursor they were fetched with
            return ReadMore(**{_READ_MORE_KWARGS[previous.cursor_kind]: previous.cursor})
        raise MalformedResponseError(
            "Result reports remaining records but carries no resultId to continue from"
        )

    def _collect(
        self, function: PagedFunction, failure_message: str, max_total_count: int | None
    ) -> QueryResult:
        result = QueryResult()
        for page in self.iter_pages(function, failure_message, max_total_count, result.history):
            result.add_page(page)
        result.done = True
        LOGGER.info(
            "Read %d records in %d batches", len(result.records), len(result.batches)
        )
        return result

    def get_query_records(
        self, query: ReadByQuery, max_total_count: int | None = None
    ) -> QueryResult:
        return self._collect(
            query, "An error occurred trying to get query records", max_total_count
        )

    def get_view_records(self, view: ReadView, max_total_count: int | None = None) -> QueryResult:
        return self._collect(view, "An error occurred trying to get view records", max_total_count)

    def get_report_records(
        self, report: ReadReport, max_total_count: int | None = None
    ) -> QueryResult:
        return self._collect(
            report, "An error occurred trying to get report records", max_total_count
        )
