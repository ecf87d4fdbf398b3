from collections.abc import Callable, Iterable
from types import TracebackType
from typing import Any, ClassVar, TypeVar
from typing_extensions import override

from httpx import Client

from ._models import ExecutionRecord, PageResult
from .auth import Credentials, LoginCredentials, SessionCredentials, lazy_credentials
from .auth.profile import SETTING_ENV_VARS
from .auth.session import SessionProvider
from .data.filters import Condition
from .data.query import DEFAULT_MAX_TOTAL_COUNT, QueryClient, QueryResult
from .exceptions import AuthenticationFailed, ControlFailed, IntacctException
from .functions.base import AbstractFunction, Content
from .functions.common import (
    DEFAULT_PAGE_SIZE,
    Create,
    Delete,
    Inspect,
    Read,
    ReadByName,
    ReadByQuery,
    ReadMore,
    ReadRelated,
    ReadReport,
    ReadView,
    Record,
    Update,
)
from .functions.company import AuditTrailRead, UserPermissionsRead
from .logger import getLogger
from .request_handler import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_NO_RETRY_SERVER_ERROR_CODES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    RequestHandler,
)
from .xml.request import RequestConfig
from .xml.response import AbstractResponse, AsynchronousResponse, Result, SynchronousResponse

LOGGER = getLogger("client")

_R = TypeVar("_R", bound=AbstractResponse)

_CREDENTIAL_KWARGS = frozenset(SETTING_ENV_VARS) | {
    "session_id",
    "verify_ssl",
    "profile_name",
    "profile_file",
}

ContentLike = Content | AbstractFunction | list[AbstractFunction]


class IntacctClient(Client):
    """
    An ``httpx.Client`` bound to one gateway session.

    The session is acquired when the client is constructed, from explicit
    ``credentials`` or from keyword arguments resolved by
    :func:`~intacct_toolkit.auth.lazy_credentials`. Remaining keyword arguments
    are passed to ``httpx.Client``.
    """

    DEFAULT_CONNECTION_NAME: ClassVar[str] = "default"
    _connections: ClassVar[dict[str, "IntacctClient"]] = {}

    connection_name: str
    session: SessionCredentials
    session_provider: SessionProvider
    query_client: QueryClient
    last_execution: list[ExecutionRecord]
    "HTTP round trips made by the most recent call, successful or not"
    _login: LoginCredentials | None

    def __init__(
        self,
        connection_name: str = DEFAULT_CONNECTION_NAME,
        credentials: Credentials | None = None,
        session_provider: SessionProvider | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        no_retry_server_error_codes: Iterable[int] = DEFAULT_NO_RETRY_SERVER_ERROR_CODES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_total_count: int = DEFAULT_MAX_TOTAL_COUNT,
        timeout: float | None = DEFAULT_TIMEOUT,
        **kwargs,
    ):
        credential_kwargs = {
            key: kwargs.pop(key) for key in list(kwargs) if key in _CREDENTIAL_KWARGS
        }
        if credentials is None:
            credentials = lazy_credentials(**credential_kwargs)
        elif credential_kwargs:
            raise TypeError(
                "Pass either credentials or credential keyword arguments, not both: "
                + ", ".join(sorted(credential_kwargs))
            )
        super().__init__(verify=credentials.endpoint.verify_ssl, timeout=timeout, **kwargs)

        self.connection_name = connection_name
        self.max_retries = max_retries
        self.no_retry_server_error_codes = tuple(no_retry_server_error_codes)
        self.retry_delay = retry_delay
        self.session_provider = session_provider or SessionProvider(self)
        self.query_client = QueryClient(self, max_total_count)
        self.last_execution = []
        self._login = credentials if isinstance(credentials, LoginCredentials) else None

        try:
            self.register_connection(connection_name, self)
        except KeyError:
            super().close()
            raise
        try:
            super().__enter__()
            self.session = self._acquire_session(credentials)
        except BaseException:
            self.close()
            raise

    def __init_subclass__(cls) -> None:
        super().__init_subclass__()
        cls._connections = {}

    def __str__(self):
        return (
            f"{type(self).__name__} ({self.connection_name}) -> "
            f"{self.session.current_company_id} as {self.session.current_user_id}"
        )

    # connection registry

    @classmethod
    def get_connection(cls, name: str | None = None) -> "IntacctClient":
        return cls._connections[name or cls.DEFAULT_CONNECTION_NAME]

    @classmethod
    def register_connection(cls, connection_name: str, instance: "IntacctClient"):
        if connection_name in cls._connections:
            raise KeyError(
                f"IntacctClient connection '{connection_name}' has already been registered."
            )
        cls._connections[connection_name] = instance

    @classmethod
    def unregister_connection(cls, name_or_instance: "str | IntacctClient"):
        if isinstance(name_or_instance, str):
            names_to_unregister = [name_or_instance]
        else:
            names_to_unregister = [
                name
                for name, instance in cls._connections.items()
                if instance is name_or_instance
            ]
        for name in names_to_unregister:
            if cls._connections.get(name) is not None:
                del cls._connections[name]

    @override
    def close(self):
        self.unregister_connection(self)
        super().close()

    @override
    def __enter__(self):
        # the transport was opened when the session was acquired
        if self.is_closed:
            raise RuntimeError(f"{type(self).__name__} ({self.connection_name}) is closed")
        return self

    @override
    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ):
        self.unregister_connection(self)
        return super().__exit__(exc_type, exc_value, traceback)

    # session handling

    def _acquire_session(self, credentials: Credentials) -> SessionCredentials:
        try:
            if isinstance(credentials, LoginCredentials):
                session = self.session_provider.from_login_credentials(credentials)
            else:
                session = self.session_provider.from_session_credentials(credentials)
        finally:
            self.last_execution = list(self.session_provider.last_execution)
        LOGGER.info(
            "Logged into %s as %s (%s)",
            session.endpoint.url,
            session.current_user_id,
            session.current_company_id,
        )
        return session

    def refresh_session(self) -> SessionCredentials:
        """Acquire a new session, from the login credentials when the client has them."""
        self.session = self._acquire_session(self._login or self.session)
        return self.session

    def _request_handler(self) -> RequestHandler:
        return RequestHandler(
            self,
            max_retries=self.max_retries,
            no_retry_server_error_codes=self.no_retry_server_error_codes,
            retry_delay=self.retry_delay,
        )

    def _execute_with_session(
        self,
        config: RequestConfig,
        content: ContentLike,
        send: Callable[[RequestHandler, RequestConfig, ContentLike], _R],
    ) -> _R:
        """
        Send with the current session. When the gateway rejects the session and
        the client holds login credentials, a new session is acquired and the
        request is replayed once.
        """
        handler = self._request_handler()
        try:
            return send(handler, config._replace(credentials=self.session), content)
        except AuthenticationFailed as e:
            if self._login is None or isinstance(e, ControlFailed):
                self.last_execution = list(handler.history)
                raise
            rejected = list(handler.history)
            LOGGER.warning("Session was rejected, acquiring a new one: %s", e)
            try:
                self.refresh_session()
            except IntacctException as refresh_error:
                refresh_error.history = rejected + refresh_error.history
                self.last_execution = list(refresh_error.history)
                raise
            refreshed = list(self.last_execution)
            handler = self._request_handler()
            try:
                response = send(handler, config._replace(credentials=self.session), content)
            except IntacctException as retry_error:
                retry_error.history = rejected + refreshed + retry_error.history
                self.last_execution = list(retry_error.history)
                raise
            response.history = rejected + refreshed + response.history
            self.last_execution = list(response.history)
            return response
        except IntacctException:
            self.last_execution = list(handler.history)
            raise

    # request execution

    def execute(
        self,
        content: ContentLike,
        transaction: bool = False,
        control_id: str | None = None,
        unique_id: bool = False,
        include_whitespace: bool = False,
    ) -> SynchronousResponse:
        config = RequestConfig(
            credentials=self.session,
            control_id=control_id,
            unique_id=unique_id,
            transaction=transaction,
            include_whitespace=include_whitespace,
        )
        response = self._execute_with_session(
            config, content, RequestHandler.execute_synchronous
        )
        self.last_execution = list(response.history)
        return response

    def execute_async(
        self,
        content: ContentLike,
        policy_id: str,
        transaction: bool = False,
        control_id: str | None = None,
        unique_id: bool = False,
    ) -> AsynchronousResponse:
        config = RequestConfig(
            credentials=self.session,
            control_id=control_id,
            unique_id=unique_id,
            transaction=transaction,
            policy_id=policy_id,
        )
        response = self._execute_with_session(
            config, content, RequestHandler.execute_asynchronous
        )
        self.last_execution = list(response.history)
        return response

    def _run(self, function: AbstractFunction, failure_message: str) -> Result:
        response = self.execute(function)
        try:
            return response.get_result(0).ensure_status_success(failure_message)
        except IntacctException as e:
            e.history = list(response.history)
            raise

    # object operations

    def read(
        self,
        object_name: str,
        keys: Iterable[Any],
        fields: Iterable[str] | None = None,
        doc_par_id: str | None = None,
    ) -> list[dict[str, Any]]:
        function = Read(object_name=object_name, keys=keys, fields=fields, doc_par_id=doc_par_id)
        return self._run(function, "An error occurred trying to read records").records

    def read_by_name(
        self,
        object_name: str,
        names: Iterable[Any],
        fields: Iterable[str] | None = None,
        doc_par_id: str | None = None,
    ) -> list[dict[str, Any]]:
        function = ReadByName(
            object_name=object_name, names=names, fields=fields, doc_par_id=doc_par_id
        )
        return self._run(function, "An error occurred trying to read records by name").records

    def read_by_query(
        self,
        object_name: str,
        query: str | Condition | None = None,
        fields: Iterable[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        doc_par_id: str | None = None,
    ) -> PageResult:
        """First page of a query. Use :meth:`read_more` or :meth:`get_query_records` for the rest."""
        function = ReadByQuery(
            object_name=object_name,
            query=str(query) if query is not None else None,
            fields=fields,
            page_size=page_size,
            doc_par_id=doc_par_id,
        )
        return self._run(function, "An error occurred trying to read query records").to_page()

    def read_more(
        self,
        result_id: str | None = None,
        object_name: str | None = None,
        view: str | None = None,
        report_id: str | None = None,
    ) -> PageResult:
        function = ReadMore(
            result_id=result_id, object_name=object_name, view=view, report_id=report_id
        )
        return self._run(function, "An error occurred trying to read more records").to_page()

    def read_view(
        self,
        view: str,
        filters: Iterable[tuple[str, str, Any]] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> PageResult:
        function = ReadView(view=view, filters=filters, page_size=page_size)
        return self._run(function, "An error occurred trying to read view records").to_page()

    def read_report(
        self,
        report: str,
        arguments: dict[str, Any] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        wait_time: int = 0,
    ) -> PageResult:
        function = ReadReport(
            report=report, arguments=arguments, page_size=page_size, wait_time=wait_time
        )
        return self._run(function, "An error occurred trying to read report records").to_page()

    def read_related(
        self,
        object_name: str,
        relation: str,
        keys: Iterable[Any],
        fields: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        function = ReadRelated(object_name=object_name, relation=relation, keys=keys, fields=fields)
        return self._run(function, "An error occurred trying to read related records").records

    def inspect(self, object_name: str = "*", detail: bool = False) -> list[dict[str, Any]]:
        function = Inspect(object_name=object_name, detail=detail)
        return self._run(function, "An error occurred trying to inspect objects").records

    def get_user_permissions(self, user_id: str) -> list[dict[str, Any]]:
        function = UserPermissionsRead(user_id=user_id)
        return self._run(function, "An error occurred trying to get user permissions").records

    def get_audit_trail(self, object_name: str, object_key: str) -> list[dict[str, Any]]:
        function = AuditTrailRead(object_name=object_name, object_key=object_key)
        return self._run(function, "An error occurred trying to get audit trail").records

    def create(self, records: Iterable[Record]) -> list[dict[str, Any]]:
        function = Create(records=records)
        return self._run(function, "An error occurred trying to create records").records

    def update(self, records: Iterable[Record]) -> list[dict[str, Any]]:
        function = Update(records=records)
        return self._run(function, "An error occurred trying to update records").records

    def delete(self, object_name: str, keys: Iterable[Any]) -> list[dict[str, Any]]:
        function = Delete(object_name=object_name, keys=keys)
        return self._run(function, "An error occurred trying to delete records").records

    # paged reads

    def get_query_records(
        self,
        object_name: str,
        query: str | Condition | None = None,
        fields: Iterable[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_total_count: int | None = None,
        doc_par_id: str | None = None,
    ) -> QueryResult:
        function = ReadByQuery(
            object_name=object_name,
            query=str(query) if query is not None else None,
            fields=fields,
            page_size=page_size,
            doc_par_id=doc_par_id,
        )
        return self._paged(self.query_client.get_query_records, function, max_total_count)

    def get_view_records(
        self,
        view: str,
        filters: Iterable[tuple[str, str, Any]] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_total_count: int | None = None,
    ) -> QueryResult:
        function = ReadView(view=view, filters=filters, page_size=page_size)
        return self._paged(self.query_client.get_view_records, function, max_total_count)

    def get_report_records(
        self,
        report: str,
        arguments: dict[str, Any] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        wait_time: int = 0,
        max_total_count: int | None = None,
    ) -> QueryResult:
        function = ReadReport(
            report=report, arguments=arguments, page_size=page_size, wait_time=wait_time
        )
        return self._paged(self.query_client.get_report_records, function, max_total_count)

    def _paged(self, collect, function, max_total_count: int | None) -> QueryResult:
        try:
            result = collect(function, max_total_count)
        except IntacctException as e:
            self.last_execution = list(e.history)
            raise
        self.last_execution = list(result.history)
        return result
