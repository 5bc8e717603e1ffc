import pytest

from schedule_arranger.config import Settings

# pyright: reportUnknownMemberType=none, reportUnknownVariableType=none, reportCallIssue=none


def _settings(**overrides) -> Settings:
    values = {
        "CORS_ALLOW_ORIGINS": "http://localhost:5173",
        "OIDC_AUTHORITY": "https://idp.example.com",
        "OIDC_CLIENT_ID": "client_id",
    }
    values.update(overrides)
    return Settings(**values)


def test_cors_origins_list_string_parsing():
    """Test that a comma separated CORS origins string becomes a list"""

    origin1 = "https://localhost:3000"
    origin2 = "https://localhost:3001"

    settings = _settings(CORS_ALLOW_ORIGINS=f"{origin1},{origin2}")
    assert settings.cors_allow_origins == [origin1, origin2]


def test_empty_cors_origins_raises_error():
    """Test that empty CORS_ALLOW_ORIGINS raises ValueError"""
    with pytest.raises(ValueError, match="CORS_ALLOW_ORIGINS"):
        _ = _settings(CORS_ALLOW_ORIGINS="")


def test_split_origins_cleans_bracketed_string():
    """Test that split_origins cleans bracketed string"""

    result = Settings.split_origins("[https://localhost:3000,https://example.com,]")
    assert result == ["https://localhost:3000", "https://example.com"]


def test_split_origins_accepts_list():
    """Test that split_origins passes through list input"""

    origins_list = ["https://localhost:3000", "https://example.com"]
    assert Settings.split_origins(origins_list) == origins_list


def test_defaults():
    settings = _settings()

    assert settings.server_port == 8000
    assert settings.database_url == "sqlite+pysqlite:///database.sqlite3"
    assert settings.log_level == "INFO"


def test_log_level_is_normalized():
    assert _settings(LOG_LEVEL=" debug ").log_level == "DEBUG"


def test_oidc_urls_are_derived():
    settings = _settings(OIDC_AUTHORITY="https://idp.example.com/realm/")

    assert (
        settings.oidc_config_url
        == "https://idp.example.com/realm/.well-known/openid-configuration"
    )
    assert settings.oidc_issuer == "https://idp.example.com/realm"


def test_frontend_redirect_uri():
    assert _settings().frontend_redirect_uri == "http://localhost:5173/auth/callback"

    settings = _settings(FRONTEND_REDIRECT_URI="https://app.example.com/auth/callback")
    assert settings.frontend_redirect_uri == "https://app.example.com/auth/callback"


def test_settings_are_frozen():
    settings = _settings()

    with pytest.raises(ValueError):
        settings.server_port = 1234
