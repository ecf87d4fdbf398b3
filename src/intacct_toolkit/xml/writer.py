"""
Streaming-style writer for gateway request documents.

The gateway expects a fixed nesting of elements with a handful of conventions
that recur in every function block: optional elements are left out entirely,
"required" elements are written empty when no value was given, dates appear
either as ``mm/dd/YYYY`` or split into ``<year>``/``<month>``/``<day>``, and
booleans are the literals ``true`` and ``false``.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from lxml import etree

DATE_FORMAT = "%m/%d/%Y"


def coerce_date(value: date | datetime | str) -> date:
    """Accepts a date, datetime or ISO formatted string (time part optional)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise ValueError(f"Unable to parse date value {value!r}") from None
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT + " %H:%M:%S")
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class XMLWriter:
    _root: etree._Element | None
    _stack: list[etree._Element]

    def __init__(self):
        self._root = None
        self._stack = []

    @property
    def root(self) -> etree._Element:
        if self._root is None:
            raise ValueError("No elements have been written")
        return self._root

    def start_element(self, name: str):
        if self._stack:
            element = etree.SubElement(self._stack[-1], name)
        elif self._root is None:
            element = etree.Element(name)
            self._root = element
        else:
            raise ValueError(f"Cannot start <{name}>: the document already has a root element")
        self._stack.append(element)
        return self

    def end_element(self):
        if not self._stack:
            raise ValueError("end_element called without a matching start_element")
        self._stack.pop()
        return self

    def write_attribute(self, name: str, value: Any):
        if not self._stack:
            raise ValueError(f"Cannot write attribute {name} outside of an element")
        if value is not None:
            self._stack[-1].set(name, format_value(value))
        return self

    def write_element(self, name: str, value: Any = None, write_null: bool = False):
        """
        Write a text element. ``None`` values are skipped unless ``write_null``
        is set, in which case an empty element is written.
        """
        if value is None and not write_null:
            return self
        self.start_element(name)
        if value is not None:
            self._stack[-1].text = format_value(value)
        return self.end_element()

    def write_element_list(self, parent: str, child: str, values: Iterable[Any]):
        self.start_element(parent)
        for value in values:
            self.write_element(child, value, True)
        return self.end_element()

    def write_date(self, name: str, value: date | datetime | str | None, write_null: bool = False):
        if value is None:
            return self.write_element(name, None, write_null)
        return self.write_element(name, coerce_date(value).strftime(DATE_FORMAT))

    def write_date_split_elements(
        self, name: str, value: date | datetime | str | None, write_null: bool = True
    ):
        if value is None:
            return self.write_element(name, None, write_null)
        as_date = coerce_date(value)
        self.start_element(name)
        self.write_element("year", as_date.strftime("%Y"))
        self.write_element("month", as_date.strftime("%m"))
        self.write_element("day", as_date.strftime("%d"))
        return self.end_element()

    def write_custom_fields(self, custom_fields: Mapping[str, Any] | None):
        """Legacy ``customfields/customfield`` block used by the 2.1-style functions."""
        if not custom_fields:
            return self
        self.start_element("customfields")
        for field_name, field_value in custom_fields.items():
            self.start_element("customfield")
            self.write_element("customfieldname", field_name, True)
            self.write_element("customfieldvalue", field_value, True)
            self.end_element()
        return self.end_element()

    def write_recursive(self, values: Mapping[str, Any]):
        """Nested mappings become nested elements, lists repeat the element."""
        for key, value in values.items():
            if isinstance(value, Mapping):
                self.start_element(key)
                self.write_recursive(value)
                self.end_element()
            elif isinstance(value, (list, tuple)):
                for item in value:
                    if isinstance(item, Mapping):
                        self.start_element(key)
                        self.write_recursive(item)
                        self.end_element()
                    else:
                        self.write_element(key, item, True)
            else:
                self.write_element(key, value, True)
        return self

    def tostring(self, pretty_print: bool = False) -> bytes:
        if self._stack:
            raise ValueError(f"Unclosed element <{self._stack[-1].tag}>")
        return etree.tostring(
            self.root,
            xml_declaration=True,
            encoding="UTF-8",
            pretty_print=pretty_print,
        )
