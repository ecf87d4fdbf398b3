"""
Function blocks shared by every object in the gateway's generic object API:
reads, paged queries, reports, views and record create/update/delete.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from .base import AbstractFunction
from ..xml.writer import XMLWriter

RETURN_FORMATS = ("xml",)
DEFAULT_RETURN_FORMAT = "xml"

MAX_KEY_COUNT = 100
MAX_RECORD_COUNT = 100

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 1000

MIN_WAIT_TIME = 0
MAX_WAIT_TIME = 30


def _validate_return_format(return_format: str | None, allow_none: bool = False):
    if return_format is None and allow_none:
        return None
    if return_format not in RETURN_FORMATS:
        raise ValueError("Return Format is not a valid format")
    return return_format


def _validate_bounded_int(value: int, label: str, minimum: int, maximum: int):
    # bool is an int subclass, but never a meaningful size
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{label} not valid int type")
    if value < minimum:
        raise ValueError(f"{label} cannot be less than {minimum}")
    if value > maximum:
        raise ValueError(f"{label} cannot be greater than {maximum}")
    return value


def _validate_keys(keys: Iterable[Any] | None, label: str = "keys") -> list[str]:
    key_list = [str(key) for key in keys] if keys else []
    if len(key_list) > MAX_KEY_COUNT:
        raise ValueError(f"{label} count cannot exceed {MAX_KEY_COUNT}")
    return key_list


def _fields_for_xml(fields: Iterable[str] | None) -> str:
    field_list = list(fields) if fields else []
    return ",".join(field_list) if field_list else "*"


class Read(AbstractFunction):
    object_name: str | None
    fields: list[str]
    doc_par_id: str | None

    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str | None = None,
        keys: Iterable[Any] | None = None,
        fields: Iterable[str] | None = None,
        return_format: str | None = None,
        doc_par_id: str | None = None,
    ):
        super().__init__(control_id)
        self.object_name = object_name
        self.keys = keys
        self.fields = list(fields) if fields else []
        self.return_format = return_format
        self.doc_par_id = doc_par_id

    @property
    def keys(self) -> list[str]:
        return self._keys

    @keys.setter
    def keys(self, keys: Iterable[Any] | None):
        self._keys = _validate_keys(keys)

    @property
    def return_format(self) -> str | None:
        return self._return_format

    @return_format.setter
    def return_format(self, return_format: str | None):
        self._return_format = _validate_return_format(return_format, allow_none=True)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("read")
        xml.write_element("object", self.object_name, True)
        xml.write_element("keys", ",".join(self.keys), True)
        xml.write_element("fields", _fields_for_xml(self.fields))
        xml.write_element("returnFormat", self.return_format)
        xml.write_element("docparid", self.doc_par_id)
        xml.end_element()  # read

        xml.end_element()  # function


class ReadByName(Read):
    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str | None = None,
        names: Iterable[Any] | None = None,
        fields: Iterable[str] | None = None,
        return_format: str | None = None,
        doc_par_id: str | None = None,
    ):
        super().__init__(
            control_id,
            object_name=object_name,
            keys=names,
            fields=fields,
            return_format=return_format,
            doc_par_id=doc_par_id,
        )

    @property
    def names(self) -> list[str]:
        return self.keys

    @names.setter
    def names(self, names: Iterable[Any] | None):
        self._keys = _validate_keys(names, "names")

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readByName")
        xml.write_element("object", self.object_name, True)
        xml.write_element("keys", ",".join(self.names), True)
        xml.write_element("fields", _fields_for_xml(self.fields))
        xml.write_element("returnFormat", self.return_format)
        xml.write_element("docparid", self.doc_par_id)
        xml.end_element()  # readByName

        xml.end_element()  # function


class ReadByQuery(AbstractFunction):
    """
    First call of a paged object query. The response carries a ``resultId``
    cursor which ``ReadMore`` uses to fetch the remaining pages.
    """

    object_name: str | None
    query: str | None
    fields: list[str]
    doc_par_id: str | None

    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str | None = None,
        query: str | None = None,
        fields: Iterable[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        return_format: str = DEFAULT_RETURN_FORMAT,
        doc_par_id: str | None = None,
    ):
        super().__init__(control_id)
        self.object_name = object_name
        self.query = query
        self.fields = list(fields) if fields else []
        self.page_size = page_size
        self.return_format = return_format
        self.doc_par_id = doc_par_id

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, page_size: int):
        self._page_size = _validate_bounded_int(
            page_size, "Page Size", MIN_PAGE_SIZE, MAX_PAGE_SIZE
        )

    @property
    def return_format(self) -> str:
        return self._return_format

    @return_format.setter
    def return_format(self, return_format: str):
        self._return_format = _validate_return_format(return_format)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readByQuery")
        xml.write_element("object", self.object_name, True)
        xml.write_element("query", self.query, True)
        xml.write_element("fields", _fields_for_xml(self.fields))
        xml.write_element("pagesize", self.page_size)
        xml.write_element("returnFormat", self.return_format)
        xml.write_element("docparid", self.doc_par_id)
        xml.end_element()  # readByQuery

        xml.end_element()  # function


CursorKind = Literal["resultId", "object", "view", "reportId"]


class ReadMore(AbstractFunction):
    """Continue a paged read. Exactly one cursor kind must be given."""

    cursor_kind: CursorKind
    cursor: str

    def __init__(
        self,
        control_id: str | None = None,
        *,
        result_id: str | None = None,
        object_name: str | None = None,
        view: str | None = None,
        report_id: str | None = None,
    ):
        super().__init__(control_id)
        given: list[tuple[CursorKind, str]] = [
            (kind, value)
            for kind, value in (
                ("resultId", result_id),
                ("object", object_name),
                ("view", view),
                ("reportId", report_id),
            )
            if value
        ]
        if len(given) != 1:
            raise ValueError(
                "readMore requires exactly one of result_id, object_name, view or report_id"
            )
        self.cursor_kind, self.cursor = given[0]

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readMore")
        xml.write_element(self.cursor_kind, self.cursor, True)
        xml.end_element()  # readMore

        xml.end_element()  # function


class ReadView(AbstractFunction):
    view: str
    filters: list[tuple[str, str, Any]]

    def __init__(
        self,
        control_id: str | None = None,
        *,
        view: str,
        filters: Iterable[tuple[str, str, Any]] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        return_format: str = DEFAULT_RETURN_FORMAT,
    ):
        super().__init__(control_id)
        if not view:
            raise ValueError('Required "view" not supplied')
        self.view = view
        self.filters = list(filters) if filters else []
        self.page_size = _validate_bounded_int(
            page_size, "Page Size", MIN_PAGE_SIZE, MAX_PAGE_SIZE
        )
        self.return_format = _validate_return_format(return_format)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readView")
        xml.write_element("view", self.view, True)
        if self.filters:
            xml.start_element("filters")
            for field, operator, value in self.filters:
                xml.start_element("filterExpression")
                xml.write_element("field", field, True)
                xml.write_element("operator", operator, True)
                xml.write_element("value", value, True)
                xml.end_element()  # filterExpression
            xml.end_element()  # filters
        xml.write_element("pagesize", self.page_size)
        xml.write_element("returnFormat", self.return_format)
        xml.end_element()  # readView

        xml.end_element()  # function


class ReadReport(AbstractFunction):
    report: str
    arguments: Mapping[str, Any]
    return_def: bool
    list_separator: str | None

    def __init__(
        self,
        control_id: str | None = None,
        *,
        report: str,
        arguments: Mapping[str, Any] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        wait_time: int = MIN_WAIT_TIME,
        return_format: str = DEFAULT_RETURN_FORMAT,
        return_def: bool = False,
        list_separator: str | None = None,
    ):
        super().__init__(control_id)
        if not report:
            raise ValueError('Required "report" not supplied')
        if not isinstance(report, str):
            raise TypeError("report must be a string")
        if not isinstance(return_def, bool):
            raise TypeError("return_def must be a bool")
        if list_separator is not None and not isinstance(list_separator, str):
            raise TypeError("list_separator must be a string")
        self.report = report
        self.arguments = arguments or {}
        self.page_size = _validate_bounded_int(
            page_size, "Page Size", MIN_PAGE_SIZE, MAX_PAGE_SIZE
        )
        self.wait_time = _validate_bounded_int(
            wait_time, "Wait Time", MIN_WAIT_TIME, MAX_WAIT_TIME
        )
        self.return_format = _validate_return_format(return_format)
        self.return_def = return_def
        self.list_separator = list_separator or None

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readReport")
        if self.return_def:
            xml.write_attribute("returnDef", "true")
            xml.write_element("report", self.report, True)
        else:
            xml.write_element("report", self.report, True)
            if self.arguments:
                xml.start_element("arguments")
                xml.write_recursive(self.arguments)
                xml.end_element()  # arguments
            xml.write_element("waitTime", self.wait_time)
            xml.write_element("pagesize", self.page_size)
            xml.write_element("returnFormat", self.return_format)
            xml.write_element("listSeparator", self.list_separator)
        xml.end_element()  # readReport

        xml.end_element()  # function


class ReadRelated(AbstractFunction):
    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str,
        relation: str,
        keys: Iterable[Any] | None = None,
        fields: Iterable[str] | None = None,
        return_format: str = DEFAULT_RETURN_FORMAT,
    ):
        super().__init__(control_id)
        if not relation:
            raise ValueError('Required "relation" not supplied')
        self.object_name = object_name
        self.relation = relation
        self.keys = _validate_keys(keys)
        self.fields = list(fields) if fields else []
        self.return_format = _validate_return_format(return_format)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("readRelated")
        xml.write_element("object", self.object_name, True)
        xml.write_element("keys", ",".join(self.keys), True)
        xml.write_element("relation", self.relation, True)
        xml.write_element("fields", _fields_for_xml(self.fields))
        xml.write_element("returnFormat", self.return_format)
        xml.end_element()  # readRelated

        xml.end_element()  # function


class Inspect(AbstractFunction):
    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str = "*",
        detail: bool = False,
    ):
        super().__init__(control_id)
        self.object_name = object_name
        self.detail = detail

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("inspect")
        if self.detail:
            xml.write_attribute("detail", "1")
        xml.write_element("object", self.object_name, True)
        xml.end_element()  # inspect

        xml.end_element()  # function


class Record:
    """A generic object record for ``create`` and ``update``."""

    object_name: str
    fields: dict[str, Any]

    def __init__(self, object_name: str, fields: Mapping[str, Any] | None = None):
        if not object_name:
            raise ValueError("Record requires an object name")
        self.object_name = object_name
        self.fields = dict(fields or {})

    def write_xml(self, xml: XMLWriter):
        xml.start_element(self.object_name)
        xml.write_recursive(self.fields)
        xml.end_element()

    def __repr__(self):
        return f"Record({self.object_name!r}, {self.fields!r})"


class _RecordsFunction(AbstractFunction):
    action: str

    def __init__(self, control_id: str | None = None, *, records: Iterable[Record]):
        super().__init__(control_id)
        self.records = list(records)
        if not self.records:
            raise ValueError(f"{self.action} requires at least one record")
        if len(self.records) > MAX_RECORD_COUNT:
            raise ValueError(f"{self.action} record count cannot exceed {MAX_RECORD_COUNT}")

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element(self.action)
        for record in self.records:
            record.write_xml(xml)
        xml.end_element()

        xml.end_element()  # function


class Create(_RecordsFunction):
    action = "create"


class Update(_RecordsFunction):
    action = "update"


class Delete(AbstractFunction):
    def __init__(
        self,
        control_id: str | None = None,
        *,
        object_name: str,
        keys: Iterable[Any],
    ):
        super().__init__(control_id)
        self.object_name = object_name
        self.keys = _validate_keys(keys)
        if not self.keys:
            raise ValueError("delete requires at least one key")

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("delete")
        xml.write_element("object", self.object_name, True)
        xml.write_element("keys", ",".join(self.keys), True)
        xml.end_element()  # delete

        xml.end_element()  # function
