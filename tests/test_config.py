from __future__ import annotations

import pytest

from pens.core.config import AppSettings, OAuthSettings


def test_oauth_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PENS_OAUTH_CLIENT_ID", "env-client")
    monkeypatch.setenv("PENS_OAUTH_TENANT_ID", "env-tenant")
    monkeypatch.setenv("PENS_OAUTH_CLIENT_SECRET", "env-secret")

    settings = OAuthSettings(_env_file=None)

    assert settings.client_id == "env-client"
    assert settings.client_secret == "env-secret"
    assert settings.token_endpoint == "https://login.microsoftonline.com/env-tenant/oauth2/v2.0/token"


def test_blank_paths_are_unset() -> None:
    settings = OAuthSettings(_env_file=None, certificate_path="", private_key_path="  ", client_secret="")

    assert settings.certificate_path is None
    assert settings.client_secret is None
    assert not settings.has_certificate


def test_custom_authority_host_without_trailing_slash() -> None:
    settings = OAuthSettings(_env_file=None, tenant_id="t", authority_host="https://idp.example.com/")

    assert settings.token_endpoint == "https://idp.example.com/t/oauth2/v2.0/token"


def test_settings_read_env_file(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "PENS_CHECK_INTERVAL=15\nPENS_DEBUG_MODE=true\nPENS_OAUTH_CLIENT_ID=file-client\nOTHER_TOOL_KEY=x\n",
        encoding="utf-8",
    )

    settings = AppSettings(_env_file=env_file)
    oauth = OAuthSettings(_env_file=env_file)

    assert settings.check_interval == 15
    assert settings.effective_log_level == "DEBUG"
    assert oauth.client_id == "file-client"


def test_assertion_lifetime_is_capped() -> None:
    with pytest.raises(ValueError):
        OAuthSettings(_env_file=None, assertion_lifetime_seconds=7200)
