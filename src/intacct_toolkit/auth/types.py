import typing

DEFAULT_ENDPOINT_URL = "https://api.intacct.com/ia/xml/xmlgw.phtml"


class SenderCredentials(typing.NamedTuple):
    sender_id: str
    sender_password: str

    def __repr__(self):
        return f"SenderCredentials(sender_id={self.sender_id!r}, sender_password='***')"


class Endpoint(typing.NamedTuple):
    url: str = DEFAULT_ENDPOINT_URL
    verify_ssl: bool = True


class LoginCredentials(typing.NamedTuple):
    company_id: str
    user_id: str
    user_password: str
    sender: SenderCredentials
    endpoint: Endpoint = Endpoint()
    entity_id: str | None = None

    def __repr__(self):
        return (
            f"LoginCredentials(company_id={self.company_id!r}, user_id={self.user_id!r}, "
            f"user_password='***', sender={self.sender!r}, endpoint={self.endpoint!r}, "
            f"entity_id={self.entity_id!r})"
        )


class SessionCredentials(typing.NamedTuple):
    session_id: str
    sender: SenderCredentials
    endpoint: Endpoint = Endpoint()
    current_company_id: str | None = None
    current_user_id: str | None = None
    current_user_is_external: bool = False

    def __repr__(self):
        return (
            f"SessionCredentials(session_id='***', sender={self.sender!r}, "
            f"endpoint={self.endpoint!r}, current_company_id={self.current_company_id!r}, "
            f"current_user_id={self.current_user_id!r})"
        )


Credentials = LoginCredentials | SessionCredentials

__all__ = [
    "DEFAULT_ENDPOINT_URL",
    "SenderCredentials",
    "Endpoint",
    "LoginCredentials",
    "SessionCredentials",
    "Credentials",
]
