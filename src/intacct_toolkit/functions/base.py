from abc import ABC, abstractmethod
from uuid import uuid4

from ..xml.writer import XMLWriter


class AbstractFunction(ABC):
    """One ``<function>`` block inside a request's ``<content>``."""

    control_id: str

    def __init__(self, control_id: str | None = None):
        self.control_id = control_id or str(uuid4())

    @abstractmethod
    def write_xml(self, xml: XMLWriter) -> None: ...

    def to_xml(self, pretty_print: bool = False) -> bytes:
        """Serialize this function block on its own, mostly useful for debugging."""
        xml = XMLWriter()
        self.write_xml(xml)
        return xml.tostring(pretty_print=pretty_print)

    def __repr__(self):
        return f"<{type(self).__name__} controlid={self.control_id}>"


class Content(list[AbstractFunction]):
    """Ordered collection of function blocks sent together in one request."""

    def __init__(self, functions: "AbstractFunction | list[AbstractFunction] | None" = None):
        if functions is None:
            super().__init__()
        elif isinstance(functions, AbstractFunction):
            super().__init__([functions])
        else:
            super().__init__(functions)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("content")
        for function in self:
            function.write_xml(xml)
        xml.end_element()

    def duplicate_control_ids(self) -> set[str]:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for function in self:
            if function.control_id in seen:
                duplicates.add(function.control_id)
            seen.add(function.control_id)
        return duplicates
