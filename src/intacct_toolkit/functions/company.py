from .base import AbstractFunction
from ..xml.writer import XMLWriter


class ApiSessionCreate(AbstractFunction):
    """``getAPISession``, optionally scoped to an entity (location)."""

    def __init__(self, control_id: str | None = None, *, entity_id: str | None = None):
        super().__init__(control_id)
        self.entity_id = entity_id

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("getAPISession")
        xml.write_element("locationid", self.entity_id)
        xml.end_element()  # getAPISession

        xml.end_element()  # function


class UserPermissionsRead(AbstractFunction):
    def __init__(self, control_id: str | None = None, *, user_id: str):
        super().__init__(control_id)
        if not user_id:
            raise ValueError('Required "user_id" not supplied')
        self.user_id = user_id

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("getUserPermissions")
        xml.write_element("userId", self.user_id, True)
        xml.end_element()  # getUserPermissions

        xml.end_element()  # function


class AuditTrailRead(AbstractFunction):
    def __init__(
        self, control_id: str | None = None, *, object_name: str, object_key: str
    ):
        super().__init__(control_id)
        if not object_name:
            raise ValueError('Required "object_name" not supplied')
        if not object_key:
            raise ValueError('Required "object_key" not supplied')
        self.object_name = object_name
        self.object_key = object_key

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)

        xml.start_element("getObjectTrail")
        xml.write_element("object", self.object_name, True)
        xml.write_element("objectKey", self.object_key, True)
        xml.end_element()  # getObjectTrail

        xml.end_element()  # function
