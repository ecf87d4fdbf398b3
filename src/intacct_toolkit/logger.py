import logging
import re

pkg_root = logging.getLogger("intacct_toolkit")

_SECRET_ELEMENTS = re.compile(
    r"<(?P<tag>password|sessionid|sender_password|user_password)>"
    r"[^<]*"
    r"</(?P=tag)>"
)


def getLogger(name: str | None):
    if not name:
        return pkg_root
    return pkg_root.getChild(name)


def redact_xml(text: str | bytes | None) -> str:
    """
    Mask the contents of credential elements in an XML request or response body
    so it can be written to a log.
    """
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return _SECRET_ELEMENTS.sub(r"<\g<tag>>REDACTED</\g<tag>>", text)
