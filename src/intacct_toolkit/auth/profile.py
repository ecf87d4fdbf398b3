"""
Resolution of connection settings from keyword arguments, environment
variables and an INI profile file, in that order of precedence.

The profile file (``~/.intacct/credentials.ini`` by default) holds one section
per profile::

    [default]
    sender_id = testsenderid
    sender_password = pass123!
    company_id = testcompany
    user_id = testuser
    user_password = testpass
"""

import configparser
import typing
import os
from pathlib import Path

from ..logger import getLogger

LOGGER = getLogger("profile")

DEFAULT_PROFILE_NAME = "default"
DEFAULT_PROFILE_FILE = Path.home() / ".intacct" / "credentials.ini"
PROFILE_ENV_VAR = "INTACCT_PROFILE"

SETTING_ENV_VARS = {
    "sender_id": "INTACCT_SENDER_ID",
    "sender_password": "INTACCT_SENDER_PASSWORD",
    "company_id": "INTACCT_COMPANY_ID",
    "entity_id": "INTACCT_ENTITY_ID",
    "user_id": "INTACCT_USER_ID",
    "user_password": "INTACCT_USER_PASSWORD",
    "endpoint_url": "INTACCT_ENDPOINT_URL",
}


def read_profile(
    profile_name: str | None = None, profile_file: str | os.PathLike | None = None
) -> dict[str, str]:
    """
    Read one profile section. A missing file yields an empty profile, but a
    named profile that does not exist in an existing file is an error.
    """
    profile_name = profile_name or os.environ.get(PROFILE_ENV_VAR) or DEFAULT_PROFILE_NAME
    path = Path(profile_file) if profile_file else DEFAULT_PROFILE_FILE
    if not path.is_file():
        if profile_file:
            raise FileNotFoundError(f"Profile file {path} does not exist")
        return {}

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")
    if not parser.has_section(profile_name):
        raise ValueError(f"Profile {profile_name!r} not found in {path}")
    LOGGER.debug("Reading profile %s from %s", profile_name, path)
    return {
        key: value
        for key, value in parser.items(profile_name)
        if key in SETTING_ENV_VARS and value
    }


def resolve_settings(**kwargs) -> dict[str, typing.Any]:
    """
    Merge explicit keyword arguments over environment variables over the
    profile file. Only the settings named in ``SETTING_ENV_VARS`` are merged;
    other keyword arguments are returned untouched.
    """
    profile_name = kwargs.pop("profile_name", None)
    profile_file = kwargs.pop("profile_file", None)
    settings = dict(read_profile(profile_name, profile_file))
    for setting, env_var in SETTING_ENV_VARS.items():
        if env_value := os.environ.get(env_var):
            settings[setting] = env_value
    settings.update({key: value for key, value in kwargs.items() if value is not None})
    return settings
