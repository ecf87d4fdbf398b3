__all__ = ("lazy_credentials",)

from .profile import resolve_settings
from .types import (
    DEFAULT_ENDPOINT_URL,
    Credentials,
    Endpoint,
    LoginCredentials,
    SenderCredentials,
    SessionCredentials,
)


def lazy_credentials(**kwargs) -> Credentials:
    """
    Work out which credentials the caller meant from whatever combination of
    keyword arguments, environment variables and profile settings is present.

    An existing ``session_id`` wins over login details. Sender credentials are
    required either way.
    """
    settings = resolve_settings(**kwargs)

    if not (settings.get("sender_id") and settings.get("sender_password")):
        raise ValueError(
            "Could not determine sender credentials from provided parameters. "
            "Please provide sender_id and sender_password."
        )
    sender = SenderCredentials(settings["sender_id"], settings["sender_password"])
    endpoint = Endpoint(
        settings.get("endpoint_url") or DEFAULT_ENDPOINT_URL,
        settings.get("verify_ssl", True),
    )

    if settings.get("session_id"):
        return SessionCredentials(settings["session_id"], sender, endpoint)
    elif all(settings.get(key) for key in ("company_id", "user_id", "user_password")):
        return LoginCredentials(
            company_id=settings["company_id"],
            user_id=settings["user_id"],
            user_password=settings["user_password"],
            sender=sender,
            endpoint=endpoint,
            entity_id=settings.get("entity_id"),
        )
    else:
        raise ValueError(
            "Could not determine authentication method from provided parameters. "
            "Please provide either session_id, or company_id, user_id and user_password."
        )
