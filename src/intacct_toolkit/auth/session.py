"""Session acquisition through the gateway's ``getAPISession`` function."""

import httpx

from .types import Credentials, Endpoint, LoginCredentials, SessionCredentials
from .._models import ExecutionRecord
from ..exceptions import IntacctException, MalformedResponseError
from ..functions.company import ApiSessionCreate
from ..logger import getLogger
from ..request_handler import DEFAULT_TIMEOUT, RequestHandler
from ..xml.request import RequestConfig
from ..xml.response import SynchronousResponse

LOGGER = getLogger("session")

SESSION_CONTROL_ID = "sessionProvider"


class SessionProvider:
    """
    Exchanges login or session credentials for a fresh API session.

    Each acquisition is a single gateway call. Retrying is left to whoever
    asked for the session, so a failed login is never silently repeated.
    """

    http_client: httpx.Client | None
    last_execution: list[ExecutionRecord]

    def __init__(
        self, http_client: httpx.Client | None = None, timeout: float | None = DEFAULT_TIMEOUT
    ):
        self.http_client = http_client
        self.timeout = timeout
        self.last_execution = []

    def from_login_credentials(self, login: LoginCredentials) -> SessionCredentials:
        return self._get_api_session(
            login, ApiSessionCreate(SESSION_CONTROL_ID, entity_id=login.entity_id)
        )

    def from_session_credentials(self, session: SessionCredentials) -> SessionCredentials:
        return self._get_api_session(session, ApiSessionCreate(SESSION_CONTROL_ID))

    def _get_api_session(
        self, credentials: Credentials, function: ApiSessionCreate
    ) -> SessionCredentials:
        config = RequestConfig(
            credentials=credentials,
            control_id=SESSION_CONTROL_ID,
            unique_id=False,
            transaction=False,
        )
        owns_client = self.http_client is None
        http_client = self.http_client or httpx.Client(
            verify=credentials.endpoint.verify_ssl, timeout=self.timeout
        )
        handler = RequestHandler(http_client, max_retries=0)
        try:
            response = handler.execute_synchronous(config, function)
            return self._session_from_response(credentials, response)
        except IntacctException as e:
            e.history = list(handler.history)
            raise
        finally:
            self.last_execution = list(handler.history)
            if owns_client:
                http_client.close()

    @staticmethod
    def _session_from_response(
        credentials: Credentials, response: SynchronousResponse
    ) -> SessionCredentials:
        authentication = response.authentication
        result = response.get_result(0).ensure_status_success(
            "An error occurred trying to get an API session"
        )
        api = result.data.find("api") if result.data is not None else None
        if api is None:
            raise MalformedResponseError("getAPISession result is missing the api element")
        session_id = (api.findtext("sessionid") or "").strip()
        endpoint_url = (api.findtext("endpoint") or "").strip()
        if not session_id or not endpoint_url:
            raise MalformedResponseError(
                "getAPISession result is missing the sessionid or endpoint element"
            )

        LOGGER.info(
            "Acquired API session for %s in company %s at %s",
            authentication.user_id,
            authentication.company_id,
            endpoint_url,
        )
        return SessionCredentials(
            session_id=session_id,
            sender=credentials.sender,
            endpoint=Endpoint(endpoint_url, credentials.endpoint.verify_ssl),
            current_company_id=authentication.company_id,
            current_user_id=authentication.user_id,
            current_user_is_external=authentication.is_external_user,
        )
