from .base import AbstractFunction, Content
from .common import (
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
from .company import ApiSessionCreate, AuditTrailRead, UserPermissionsRead
from .templates import TEMPLATES, LINE_TEMPLATES, build_function, build_line

__all__ = [
    "AbstractFunction",
    "Content",
    "Create",
    "Delete",
    "Inspect",
    "Read",
    "ReadByName",
    "ReadByQuery",
    "ReadMore",
    "ReadRelated",
    "ReadReport",
    "ReadView",
    "Record",
    "Update",
    "ApiSessionCreate",
    "AuditTrailRead",
    "UserPermissionsRead",
    "TEMPLATES",
    "LINE_TEMPLATES",
    "build_function",
    "build_line",
]
