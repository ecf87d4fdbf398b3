from collections.abc import Iterable

import httpx
import pytest
from lxml import etree

from intacct_toolkit.auth.types import (
    Endpoint,
    LoginCredentials,
    SenderCredentials,
    SessionCredentials,
)
from intacct_toolkit.client import IntacctClient

SESSION_ENDPOINT = "https://p1.intacct.com/ia/xml/xmlgw.phtml"


def _canonical(xml: str | bytes) -> bytes:
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    parser = etree.XMLParser(remove_blank_text=True)
    return etree.tostring(etree.fromstring(xml, parser), method="c14n")


def assert_xml_equal(actual: str | bytes, expected: str | bytes):
    """Compare two documents ignoring insignificant whitespace"""
    assert _canonical(actual).decode() == _canonical(expected).decode()


def error_xml(*errors: tuple[str, str, str, str]) -> str:
    entries = "".join(
        f"<error><errorno>{errorno}</errorno><description>{description}</description>"
        f"<description2>{description2}</description2><correction>{correction}</correction></error>"
        for errorno, description, description2, correction in errors
    )
    return f"<errormessage>{entries}</errormessage>"


def result_xml(
    function: str = "readByQuery",
    status: str = "success",
    data: str = "",
    control_id: str = "unittest",
    errors: str = "",
) -> str:
    return (
        f"<result><status>{status}</status><function>{function}</function>"
        f"<controlid>{control_id}</controlid>{data}{errors}</result>"
    )


def records_data(
    records: Iterable[int],
    total_count: int,
    num_remaining: int,
    result_id: str | None = "6465763031V2wi28CoHYQAAF0HcP8AAAAc5",
    list_type: str = "customer",
) -> str:
    records = list(records)
    result_id_attr = f' resultId="{result_id}"' if result_id else ""
    body = "".join(
        f"<customer><RECORDNO>{record}</RECORDNO></customer>" for record in records
    )
    return (
        f'<data listtype="{list_type}" count="{len(records)}" totalcount="{total_count}" '
        f'numremaining="{num_remaining}"{result_id_attr}>{body}</data>'
    )


def response_xml(*results: str, control_status: str = "success", auth_status: str = "success", errors: str = "") -> str:
    control = (
        f"<control><status>{control_status}</status><senderid>testsenderid</senderid>"
        "<controlid>unittest</controlid><uniqueid>false</uniqueid><dtdversion>3.0</dtdversion>"
        "</control>"
    )
    if control_status != "success":
        return f'<?xml version="1.0" encoding="UTF-8"?><response>{control}{errors}</response>'
    return (
        f'<?xml version="1.0" encoding="UTF-8"?><response>{control}<operation>'
        f"<authentication><status>{auth_status}</status><userid>testuser</userid>"
        "<companyid>testcompany</companyid>"
        "<sessiontimestamp>2015-12-06T15:57:08-08:00</sessiontimestamp></authentication>"
        f"{errors}{''.join(results)}</operation></response>"
    )


def session_response_xml(session_id: str = "fAkESesSiOnId..", endpoint: str = SESSION_ENDPOINT) -> str:
    return response_xml(
        result_xml(
            "getAPISession",
            control_id="sessionProvider",
            data=(
                f"<data><api><sessionid>{session_id}</sessionid>"
                f"<endpoint>{endpoint}</endpoint><locationid/></api></data>"
            ),
        )
    )


class MockGateway:
    """
    Serves queued responses in order and keeps every request it received.

    Queue items may be a response body, a ``(status_code, body)`` tuple, an
    ``httpx.Response`` or an exception to raise from the transport.
    """

    def __init__(self):
        self.responses: list = []
        self.requests: list[httpx.Request] = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request #{len(self.requests)} to {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        if isinstance(item, tuple):
            status_code, body = item
            return httpx.Response(status_code, text=body)
        return httpx.Response(200, text=item, headers={"Content-Type": "text/xml"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def documents(self) -> list[etree._Element]:
        return [etree.fromstring(request.content) for request in self.requests]

    def functions(self) -> list[str]:
        """Name of the first function block of every request, in order"""
        return [
            document.find("operation/content/function/*").tag
            for document in self.documents()
        ]


@pytest.fixture
def gateway():
    return MockGateway()


@pytest.fixture
def sender():
    return SenderCredentials("testsenderid", "pass123!")


@pytest.fixture
def login_credentials(sender):
    return LoginCredentials(
        company_id="testcompany",
        user_id="testuser",
        user_password="testpass",
        sender=sender,
    )


@pytest.fixture
def session_credentials(sender):
    return SessionCredentials("testsession..", sender, Endpoint())


@pytest.fixture
def client(gateway, session_credentials):
    """An IntacctClient whose session exchange has already been served"""
    gateway.queue(session_response_xml())
    with IntacctClient(
        credentials=session_credentials,
        transport=gateway.transport,
        retry_delay=0,
    ) as client:
        gateway.requests.clear()
        yield client


@pytest.fixture
def login_client(gateway, login_credentials):
    gateway.queue(session_response_xml())
    with IntacctClient(
        connection_name="login",
        credentials=login_credentials,
        transport=gateway.transport,
        retry_delay=0,
    ) as client:
        gateway.requests.clear()
        yield client
