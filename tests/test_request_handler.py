import httpx
import pytest

from intacct_toolkit.exceptions import (
    AuthenticationFailed,
    IntacctClientError,
    IntacctConnectionError,
    IntacctServerError,
)
from intacct_toolkit.functions.company import ApiSessionCreate
from intacct_toolkit.request_handler import REQUEST_CONTENT_TYPE, RequestHandler
from intacct_toolkit.xml.request import RequestConfig
from conftest import response_xml, result_xml, session_response_xml

ASYNC_ACK = (
    '<?xml version="1.0" encoding="UTF-8"?><response>'
    "<acknowledgement><status>success</status></acknowledgement>"
    "<control><status>success</status><senderid>testsenderid</senderid>"
    "<controlid>requestUnitTest</controlid><uniqueid>false</uniqueid>"
    "<dtdversion>3.0</dtdversion></control></response>"
)


@pytest.fixture
def http_client(gateway):
    with httpx.Client(transport=gateway.transport) as client:
        yield client


@pytest.fixture
def sleep(mocker):
    return mocker.patch("intacct_toolkit.request_handler.time.sleep")


@pytest.fixture
def config(session_credentials):
    return RequestConfig(session_credentials, control_id="requestUnitTest")


def handler_for(http_client, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return RequestHandler(http_client, **kwargs)


def test_request_headers_and_body(gateway, http_client, config):
    gateway.queue(session_response_xml())
    handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))

    (request,) = gateway.requests
    assert request.method == "POST"
    assert str(request.url) == "https://api.intacct.com/ia/xml/xmlgw.phtml"
    assert request.headers["Content-Type"] == REQUEST_CONTENT_TYPE
    assert b"<getAPISession" in request.content


def test_synchronous_success(gateway, http_client, config):
    gateway.queue(session_response_xml())
    handler = handler_for(http_client)
    response = handler.execute_synchronous(config, ApiSessionCreate("func1"))

    assert response.get_result().function == "getAPISession"
    assert len(response.history) == 1
    assert response.history[0].response.status_code == 200
    assert handler.history == response.history


def test_synchronous_request_drops_policy_id(gateway, http_client, config):
    gateway.queue(session_response_xml())
    handler_for(http_client).execute_synchronous(
        config._replace(policy_id="policyid123"), ApiSessionCreate("func1")
    )
    assert gateway.documents()[0].find("control/policyid") is None


def test_asynchronous_success(gateway, http_client, config):
    gateway.queue(ASYNC_ACK)
    response = handler_for(http_client).execute_asynchronous(
        config._replace(policy_id="policyid123"), ApiSessionCreate("func1")
    )
    assert response.acknowledgement.status == "success"
    assert gateway.documents()[0].findtext("control/policyid") == "policyid123"


def test_asynchronous_requires_policy_id(gateway, http_client, config):
    with pytest.raises(ValueError, match='Required "policy_id" key not supplied'):
        handler_for(http_client).execute_asynchronous(config, ApiSessionCreate("func1"))
    assert gateway.requests == []


def test_retry_on_server_error(gateway, http_client, config, sleep):
    gateway.queue((502, "Bad Gateway"), session_response_xml())
    handler = handler_for(http_client, retry_delay=1.0)
    response = handler.execute_synchronous(config, ApiSessionCreate("func1"))

    assert response.get_result().is_success
    assert [record.response.status_code for record in response.history] == [502, 200]
    sleep.assert_called_once_with(1.0)


def test_retry_delay_doubles(gateway, http_client, config, sleep):
    gateway.queue(*[(500, "Internal Server Error")] * 6)
    handler = handler_for(http_client, retry_delay=0.5)
    with pytest.raises(IntacctServerError) as exc_info:
        handler.execute_synchronous(config, ApiSessionCreate("func1"))

    assert exc_info.value.status_code == 500
    assert len(gateway.requests) == 6
    assert len(exc_info.value.history) == 6
    assert [call.args[0] for call in sleep.call_args_list] == [0.5, 1.0, 2.0, 4.0, 8.0]


def test_zero_delay_does_not_sleep(gateway, http_client, config, sleep):
    gateway.queue((503, ""), session_response_xml())
    handler_for(http_client, retry_delay=0).execute_synchronous(config, ApiSessionCreate("func1"))
    sleep.assert_not_called()


def test_max_retries_exhausted(gateway, http_client, config):
    gateway.queue(*[(502, "Bad Gateway")] * 3)
    with pytest.raises(IntacctServerError):
        handler_for(http_client, max_retries=2).execute_synchronous(
            config, ApiSessionCreate("func1")
        )
    assert len(gateway.requests) == 3


def test_no_retry_on_524(gateway, http_client, config):
    gateway.queue((524, "A timeout occurred"))
    with pytest.raises(IntacctServerError) as exc_info:
        handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))
    assert exc_info.value.status_code == 524
    assert len(gateway.requests) == 1
    assert len(exc_info.value.history) == 1


def test_custom_no_retry_codes(gateway, http_client, config):
    gateway.queue((502, "Bad Gateway"), session_response_xml())
    with pytest.raises(IntacctServerError):
        handler_for(http_client, no_retry_server_error_codes=[502]).execute_synchronous(
            config, ApiSessionCreate("func1")
        )
    assert len(gateway.requests) == 1


@pytest.mark.parametrize("status_code", [400, 401, 404])
def test_no_retry_on_client_error(gateway, http_client, config, status_code):
    gateway.queue((status_code, "nope"))
    with pytest.raises(IntacctClientError) as exc_info:
        handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))
    assert exc_info.value.status_code == status_code
    assert len(gateway.requests) == 1


def test_retry_on_transport_error(gateway, http_client, config):
    gateway.queue(httpx.ConnectError("Connection refused"), session_response_xml())
    response = handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))

    assert response.get_result().is_success
    first, second = response.history
    assert first.response is None
    assert isinstance(first.error, httpx.ConnectError)
    assert second.response.status_code == 200


def test_transport_errors_exhausted(gateway, http_client, config):
    gateway.queue(*[httpx.ReadTimeout("timed out")] * 2)
    with pytest.raises(IntacctConnectionError) as exc_info:
        handler_for(http_client, max_retries=1).execute_synchronous(
            config, ApiSessionCreate("func1")
        )
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
    assert exc_info.value.url == "https://api.intacct.com/ia/xml/xmlgw.phtml"
    assert len(exc_info.value.history) == 2


def test_gateway_failure_is_not_retried(gateway, http_client, config):
    gateway.queue(response_xml(result_xml(), auth_status="failure"))
    with pytest.raises(AuthenticationFailed) as exc_info:
        handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))
    assert len(gateway.requests) == 1
    assert len(exc_info.value.history) == 1


def test_request_body_is_redacted_in_logs(gateway, http_client, config, caplog):
    gateway.queue(session_response_xml())
    with caplog.at_level("DEBUG", logger="intacct_toolkit"):
        handler_for(http_client).execute_synchronous(config, ApiSessionCreate("func1"))
    assert "pass123!" not in caplog.text
    assert "testsession.." not in caplog.text
    assert "getAPISession" in caplog.text


@pytest.mark.parametrize(
    "kwargs,exception",
    [
        ({"max_retries": -1}, ValueError),
        ({"max_retries": 1.5}, TypeError),
        ({"max_retries": True}, TypeError),
        ({"no_retry_server_error_codes": [404]}, ValueError),
    ],
)
def test_invalid_handler_options(http_client, kwargs, exception):
    with pytest.raises(exception):
        RequestHandler(http_client, **kwargs)
