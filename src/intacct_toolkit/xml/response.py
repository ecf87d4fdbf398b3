"""
Parsers for gateway response documents.

A synchronous response looks like::

    <response>
        <control>...</control>
        <operation>
            <authentication>...</authentication>
            <result>
                <status>success</status>
                <function>readByQuery</function>
                <controlid>...</controlid>
                <data listtype="LOCATION" count="1" totalcount="1" numremaining="0" resultId="...">
                    ...
                </data>
            </result>
        </operation>
    </response>

An asynchronous response replaces ``<operation>`` with ``<acknowledgement>``.
Failures at any level carry an ``<errormessage>`` block with ``<error>`` entries.
"""

from typing import Any

from lxml import etree

from .._models import ErrorEntry, ExecutionRecord, PageResult
from ..exceptions import (
    AuthenticationFailed,
    ControlFailed,
    MalformedResponseError,
    ResponseException,
    ResultException,
)

STATUS_SUCCESS = "success"
EXTERNAL_USER_PREFIX = "ExtUser|"

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def parse_document(body: bytes | str) -> etree._Element:
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not body or not body.strip():
        raise MalformedResponseError("Response body is empty")
    try:
        return etree.fromstring(body, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise MalformedResponseError(f"Response body is not valid XML: {e}") from e


def element_to_value(node: etree._Element) -> Any:
    """
    Collapse an element into plain python values: leaf elements become their
    stripped text, repeated children become lists.
    """
    children = [child for child in node if isinstance(child.tag, str)]
    if not children:
        return (node.text or "").strip()
    grouped: dict[str, list[Any]] = {}
    for child in children:
        grouped.setdefault(child.tag, []).append(element_to_value(child))
    return {
        key: values[0] if len(values) == 1 else values for key, values in grouped.items()
    }


def _child_text(parent: etree._Element, tag: str) -> str | None:
    element = parent.find(tag)
    if element is None:
        return None
    return (element.text or "").strip()


def _required_text(parent: etree._Element, tag: str, block: str) -> str:
    value = _child_text(parent, tag)
    if value is None:
        raise MalformedResponseError(f"{block} block is missing {tag} element")
    return value


def _int_attribute(element: etree._Element, name: str) -> int | None:
    value = element.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise MalformedResponseError(
            f"Attribute {name}={value!r} on <{element.tag}> is not an integer"
        ) from None


def parse_errors(errormessage: etree._Element | None) -> list[ErrorEntry]:
    if errormessage is None:
        return []
    return [
        ErrorEntry(
            errorno=_child_text(error, "errorno") or "",
            description=_child_text(error, "description"),
            description2=_child_text(error, "description2"),
            correction=_child_text(error, "correction"),
        )
        for error in errormessage.iterfind("error")
    ]


class ControlBlock:
    status: str
    sender_id: str | None
    control_id: str | None
    unique_id: str | None
    dtd_version: str | None

    def __init__(self, element: etree._Element):
        self.status = _required_text(element, "status", "Control")
        self.sender_id = _child_text(element, "senderid")
        self.control_id = _child_text(element, "controlid")
        self.unique_id = _child_text(element, "uniqueid")
        self.dtd_version = _child_text(element, "dtdversion")


class Authentication:
    status: str
    user_id: str | None
    company_id: str | None
    entity_id: str | None
    session_timestamp: str | None

    def __init__(self, element: etree._Element):
        self.status = _required_text(element, "status", "Authentication")
        self.user_id = _child_text(element, "userid")
        self.company_id = _child_text(element, "companyid")
        self.entity_id = _child_text(element, "locationid")
        self.session_timestamp = _child_text(element, "sessiontimestamp")

    @property
    def is_external_user(self) -> bool:
        return bool(self.user_id and self.user_id.startswith(EXTERNAL_USER_PREFIX))


class Result:
    status: str
    function: str | None
    control_id: str | None
    data: etree._Element | None
    errors: list[ErrorEntry]

    def __init__(self, element: etree._Element):
        self.status = _required_text(element, "status", "Result")
        self.function = _child_text(element, "function")
        self.control_id = _child_text(element, "controlid")
        self.data = element.find("data")
        self.errors = parse_errors(element.find("errormessage"))

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS

    def ensure_status_success(self, message: str = "Result status is failure"):
        if not self.is_success:
            raise ResultException(message, self.errors)
        return self

    @property
    def records(self) -> list[dict[str, Any]]:
        if self.data is None:
            return []
        records = []
        for child in self.data:
            if not isinstance(child.tag, str):
                continue
            value = element_to_value(child)
            records.append(value if isinstance(value, dict) else {child.tag: value})
        return records

    def _data_attribute(self, name: str) -> int | None:
        if self.data is None:
            return None
        return _int_attribute(self.data, name)

    @property
    def list_type(self) -> str | None:
        return None if self.data is None else self.data.get("listtype")

    @property
    def count(self) -> int | None:
        return self._data_attribute("count")

    @property
    def total_count(self) -> int | None:
        return self._data_attribute("totalcount")

    @property
    def num_remaining(self) -> int | None:
        return self._data_attribute("numremaining")

    @property
    def result_id(self) -> str | None:
        if self.data is None:
            return None
        return self.data.get("resultId") or None

    @property
    def report_id(self) -> str | None:
        if self.data is None:
            return None
        return self.data.get("reportId") or None

    def to_page(self) -> PageResult:
        """
        Paging view of a successful read. The gateway always sends
        ``totalcount`` and ``numremaining`` on paged reads; their absence means
        the response cannot be paged safely.
        """
        if self.data is None:
            raise MalformedResponseError(
                f"Result for {self.function or 'function'} has no data element"
            )
        total_count = self.total_count
        num_remaining = self.num_remaining
        if total_count is None:
            raise MalformedResponseError("Result data is missing the totalcount attribute")
        if num_remaining is None:
            raise MalformedResponseError("Result data is missing the numremaining attribute")
        records = self.records
        count = self.count
        return PageResult(
            records=records,
            count=len(records) if count is None else count,
            total_count=total_count,
            num_remaining=num_remaining,
            result_id=self.result_id,
            list_type=self.list_type,
            report_id=self.report_id,
        )

    def __repr__(self):
        return f"<Result {self.function} {self.status} controlid={self.control_id}>"


class Operation:
    authentication: Authentication
    results: list[Result]

    def __init__(self, element: etree._Element):
        auth_element = element.find("authentication")
        if auth_element is None:
            raise MalformedResponseError("Operation block is missing authentication element")
        self.authentication = Authentication(auth_element)
        errors = parse_errors(element.find("errormessage"))
        if self.authentication.status != STATUS_SUCCESS:
            raise AuthenticationFailed("Response authentication status failure", errors)

        self.results = [Result(result) for result in element.iterfind("result")]
        if not self.results:
            if errors:
                raise ResponseException("Response operation failure", errors)
            raise MalformedResponseError("Operation block has no result elements")


class AbstractResponse:
    document: etree._Element
    control: ControlBlock
    history: "list[ExecutionRecord]"
    "HTTP round trips it took to obtain this response, attached by the request handler"

    def __init__(self, body: bytes | str):
        self.history = []
        self.document = parse_document(body)
        if self.document.tag != "response":
            raise MalformedResponseError(
                f"Expected a <response> document, got <{self.document.tag}>"
            )
        control = self.document.find("control")
        if control is None:
            raise MalformedResponseError("Response is missing control block")
        self.control = ControlBlock(control)
        if self.control.status != STATUS_SUCCESS:
            raise ControlFailed(
                "Response control status failure",
                parse_errors(self.document.find("errormessage")),
            )


class SynchronousResponse(AbstractResponse):
    operation: Operation

    def __init__(self, body: bytes | str):
        super().__init__(body)
        operation = self.document.find("operation")
        if operation is None:
            errors = parse_errors(self.document.find("errormessage"))
            if errors:
                raise ResponseException("Response failure", errors)
            raise MalformedResponseError("Response is missing operation block")
        self.operation = Operation(operation)

    @property
    def authentication(self) -> Authentication:
        return self.operation.authentication

    @property
    def results(self) -> list[Result]:
        return self.operation.results

    def get_result(self, index: int = 0) -> Result:
        try:
            return self.operation.results[index]
        except IndexError:
            raise MalformedResponseError(
                f"Response has {len(self.operation.results)} results, "
                f"result {index} was requested"
            ) from None


class Acknowledgement:
    status: str

    def __init__(self, element: etree._Element):
        self.status = _required_text(element, "status", "Acknowledgement")


class AsynchronousResponse(AbstractResponse):
    acknowledgement: Acknowledgement

    def __init__(self, body: bytes | str):
        super().__init__(body)
        acknowledgement = self.document.find("acknowledgement")
        if acknowledgement is None:
            raise MalformedResponseError("Response is missing acknowledgement block")
        self.acknowledgement = Acknowledgement(acknowledgement)
