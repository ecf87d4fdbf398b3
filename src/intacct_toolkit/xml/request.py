from typing import NamedTuple
from uuid import uuid4

from .writer import XMLWriter
from ..auth.types import Credentials, Endpoint, LoginCredentials, SenderCredentials
from ..functions.base import AbstractFunction, Content

DTD_VERSION = "3.0"


class RequestConfig(NamedTuple):
    """Everything about a request document other than its function blocks."""

    credentials: Credentials
    control_id: str | None = None
    unique_id: bool = False
    dtd_version: str = DTD_VERSION
    transaction: bool = False
    policy_id: str | None = None
    include_whitespace: bool = False

    @property
    def sender(self) -> SenderCredentials:
        return self.credentials.sender

    @property
    def endpoint(self) -> Endpoint:
        return self.credentials.endpoint

    def with_control_id(self) -> "RequestConfig":
        if self.control_id:
            return self
        return self._replace(control_id=str(uuid4()))


def _write_control(xml: XMLWriter, config: RequestConfig):
    xml.start_element("control")
    xml.write_element("senderid", config.sender.sender_id, True)
    xml.write_element("password", config.sender.sender_password, True)
    xml.write_element("controlid", config.control_id, True)
    xml.write_element("uniqueid", config.unique_id)
    xml.write_element("dtdversion", config.dtd_version)
    xml.write_element("policyid", config.policy_id)
    xml.write_element("includewhitespace", config.include_whitespace)
    xml.end_element()  # control


def _write_authentication(xml: XMLWriter, credentials: Credentials):
    xml.start_element("authentication")
    if isinstance(credentials, LoginCredentials):
        xml.start_element("login")
        xml.write_element("userid", credentials.user_id, True)
        xml.write_element("companyid", credentials.company_id, True)
        xml.write_element("password", credentials.user_password, True)
        xml.write_element("locationid", credentials.entity_id)
        xml.end_element()  # login
    else:
        xml.write_element("sessionid", credentials.session_id, True)
    xml.end_element()  # authentication


def build_request(
    config: RequestConfig, content: Content | AbstractFunction | list[AbstractFunction]
) -> bytes:
    """
    Serialize a full ``<request>`` document.

    Raises:
        ValueError: when the content is empty, or when ``unique_id`` is set and two
            function blocks share a control id.
    """
    if not isinstance(content, Content):
        content = Content(content)
    if not content:
        raise ValueError("A request must contain at least one function")
    if config.unique_id and (duplicates := content.duplicate_control_ids()):
        raise ValueError(
            "Function control ids must be unique within a request, duplicated: "
            + ", ".join(sorted(duplicates))
        )
    config = config.with_control_id()

    xml = XMLWriter()
    xml.start_element("request")
    _write_control(xml, config)

    xml.start_element("operation")
    xml.write_attribute("transaction", config.transaction)
    _write_authentication(xml, config.credentials)
    content.write_xml(xml)
    xml.end_element()  # operation

    xml.end_element()  # request
    return xml.tostring()
