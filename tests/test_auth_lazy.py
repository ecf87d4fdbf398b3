import pytest
from unittest.mock import patch

from intacct_toolkit.auth import (
    Endpoint,
    LoginCredentials,
    SenderCredentials,
    SessionCredentials,
    lazy_credentials,
)
from intacct_toolkit.auth.profile import SETTING_ENV_VARS, read_profile, resolve_settings

PROFILE = """
[default]
sender_id = profilesender
sender_password = profilesenderpass
company_id = profilecompany
user_id = profileuser
user_password = profilepass

[unittest]
sender_id = unittestsender
sender_password = unittestpass
company_id = unittestcompany
user_id = unittestuser
user_password = unittestuserpass
endpoint_url = https://unittest.intacct.com/ia/xml/xmlgw.phtml
"""


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep the developer's real profile and environment out of these tests"""
    for env_var in [*SETTING_ENV_VARS.values(), "INTACCT_PROFILE"]:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setattr(
        "intacct_toolkit.auth.profile.DEFAULT_PROFILE_FILE", tmp_path / "credentials.ini"
    )
    return tmp_path


@pytest.fixture
def profile_file(isolated_settings):
    path = isolated_settings / "credentials.ini"
    path.write_text(PROFILE, encoding="utf-8")
    return path


def test_login_credentials_from_kwargs():
    """Company, user and password produce login credentials"""
    credentials = lazy_credentials(
        sender_id="testsenderid",
        sender_password="pass123!",
        company_id="testcompany",
        user_id="testuser",
        user_password="testpass",
        entity_id="100",
    )
    assert credentials == LoginCredentials(
        company_id="testcompany",
        user_id="testuser",
        user_password="testpass",
        sender=SenderCredentials("testsenderid", "pass123!"),
        endpoint=Endpoint(),
        entity_id="100",
    )


def test_session_credentials_win_over_login():
    """An existing session id is preferred to login details"""
    credentials = lazy_credentials(
        sender_id="testsenderid",
        sender_password="pass123!",
        session_id="testsession..",
        company_id="testcompany",
        user_id="testuser",
        user_password="testpass",
    )
    assert isinstance(credentials, SessionCredentials)
    assert credentials.session_id == "testsession.."


def test_endpoint_and_verify_ssl():
    credentials = lazy_credentials(
        sender_id="testsenderid",
        sender_password="pass123!",
        session_id="testsession..",
        endpoint_url="https://unittest.intacct.com/ia/xml/xmlgw.phtml",
        verify_ssl=False,
    )
    assert credentials.endpoint == Endpoint(
        "https://unittest.intacct.com/ia/xml/xmlgw.phtml", False
    )


def test_missing_sender():
    with pytest.raises(ValueError, match="sender credentials"):
        lazy_credentials(company_id="testcompany", user_id="testuser", user_password="testpass")


def test_missing_authentication():
    with pytest.raises(ValueError, match="Could not determine authentication method"):
        lazy_credentials(sender_id="testsenderid", sender_password="pass123!", user_id="testuser")


def test_environment_variables(monkeypatch):
    """Settings are read from INTACCT_* environment variables"""
    monkeypatch.setenv("INTACCT_SENDER_ID", "envsender")
    monkeypatch.setenv("INTACCT_SENDER_PASSWORD", "envsenderpass")
    monkeypatch.setenv("INTACCT_COMPANY_ID", "envcompany")
    monkeypatch.setenv("INTACCT_USER_ID", "envuser")
    monkeypatch.setenv("INTACCT_USER_PASSWORD", "envpass")

    credentials = lazy_credentials(user_id="kwarguser")
    assert isinstance(credentials, LoginCredentials)
    assert credentials.sender == SenderCredentials("envsender", "envsenderpass")
    assert credentials.company_id == "envcompany"
    assert credentials.user_id == "kwarguser"


def test_default_profile(profile_file):
    credentials = lazy_credentials()
    assert credentials.sender.sender_id == "profilesender"
    assert credentials.company_id == "profilecompany"
    assert credentials.endpoint == Endpoint()


def test_named_profile(profile_file, monkeypatch):
    credentials = lazy_credentials(profile_name="unittest")
    assert credentials.user_id == "unittestuser"
    assert credentials.endpoint.url == "https://unittest.intacct.com/ia/xml/xmlgw.phtml"

    monkeypatch.setenv("INTACCT_PROFILE", "unittest")
    assert lazy_credentials().company_id == "unittestcompany"


def test_precedence(profile_file, monkeypatch):
    """Keyword arguments beat the environment, which beats the profile"""
    monkeypatch.setenv("INTACCT_COMPANY_ID", "envcompany")
    monkeypatch.setenv("INTACCT_USER_ID", "envuser")
    settings = resolve_settings(user_id="kwarguser")
    assert settings["sender_id"] == "profilesender"
    assert settings["company_id"] == "envcompany"
    assert settings["user_id"] == "kwarguser"


def test_profile_errors(profile_file, tmp_path):
    with pytest.raises(ValueError, match="Profile 'missing' not found"):
        read_profile("missing")
    with pytest.raises(FileNotFoundError):
        read_profile(profile_file=tmp_path / "nope.ini")


def test_missing_default_profile_file_is_empty():
    assert read_profile() == {}


def test_explicit_profile_file(tmp_path):
    path = tmp_path / "other.ini"
    path.write_text("[default]\nsender_id = othersender\nunrelated = ignored\n", encoding="utf-8")
    assert read_profile(profile_file=path) == {"sender_id": "othersender"}


@patch("intacct_toolkit.auth.login_lazy.resolve_settings")
def test_lazy_credentials_uses_resolved_settings(mock_resolve):
    mock_resolve.return_value = {
        "sender_id": "mocksender",
        "sender_password": "mockpass",
        "session_id": "mocksession..",
    }
    credentials = lazy_credentials(profile_name="mocked")
    mock_resolve.assert_called_once_with(profile_name="mocked")
    assert credentials.session_id == "mocksession.."


def test_reprs_hide_secrets():
    sender = SenderCredentials("testsenderid", "pass123!")
    login = LoginCredentials("testcompany", "testuser", "testpass", sender)
    session = SessionCredentials("testsession..", sender)
    for text in (repr(sender), repr(login), repr(session)):
        assert "pass123!" not in text
        assert "testpass" not in text
        assert "testsession.." not in text
    assert "testuser" in repr(login)
