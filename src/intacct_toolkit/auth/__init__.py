from .types import (
    Credentials,
    Endpoint,
    LoginCredentials,
    SenderCredentials,
    SessionCredentials,
)
from .login_lazy import lazy_credentials


__all__ = [
    "Credentials",
    "Endpoint",
    "LoginCredentials",
    "SenderCredentials",
    "SessionCredentials",
    "lazy_credentials",
]
