from .client import IntacctClient
from .auth import (
    Endpoint,
    LoginCredentials,
    SenderCredentials,
    SessionCredentials,
    lazy_credentials,
)
from .auth.session import SessionProvider
from .data.query import QueryClient, QueryResult
from .functions import Content, Record, build_function

__all__ = [
    "IntacctClient",
    "Endpoint",
    "LoginCredentials",
    "SenderCredentials",
    "SessionCredentials",
    "SessionProvider",
    "QueryClient",
    "QueryResult",
    "Content",
    "Record",
    "build_function",
    "lazy_credentials",
]
