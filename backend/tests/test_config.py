"""
Tests for centralized configuration.
"""
import pytest
from datanova.core.config import Settings, get_settings, reload_settings

ENV_VARS = (
    "API_BASE_URL", "REQUEST_TIMEOUT_SECONDS", "MAX_FILE_SIZE_MB", "ACCEPTED_EXTENSIONS",
    "STORAGE_BACKEND", "STORAGE_DIR", "SESSION_KEY", "DEFAULT_ROW_LIMIT", "MIN_ROW_LIMIT",
    "MAX_ROW_LIMIT", "ALLOWED_ORIGINS", "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    reload_settings()


@pytest.mark.unit
def test_settings_defaults(clean_env):
    """Test that settings have sensible defaults."""
    settings = Settings.from_env()

    assert settings.api_base_url == "https://datanova-backend.onrender.com"
    assert settings.request_timeout_seconds == 120
    assert settings.max_file_size_mb == 50
    assert settings.accepted_extensions_list == [".csv"]
    assert settings.storage_backend == "file"
    assert settings.session_key == "datanova_cache"
    assert (settings.default_row_limit, settings.min_row_limit, settings.max_row_limit) == (50, 10, 1000)
    assert settings.log_level == "INFO"


@pytest.mark.unit
def test_settings_from_env(clean_env):
    """Test loading settings from environment variables."""
    clean_env.setenv("API_BASE_URL", "http://localhost:8000/")
    clean_env.setenv("MAX_FILE_SIZE_MB", "100")
    clean_env.setenv("STORAGE_BACKEND", "MEMORY")
    clean_env.setenv("MAX_ROW_LIMIT", "500")

    settings = reload_settings()

    assert settings.api_base_url == "http://localhost:8000"
    assert settings.max_file_size_mb == 100
    assert settings.storage_backend == "memory"
    assert settings.max_row_limit == 500


@pytest.mark.unit
def test_settings_validation():
    """Test that settings validate input ranges."""
    with pytest.raises(ValueError):
        Settings(max_file_size_mb=0)

    with pytest.raises(ValueError):
        Settings(log_level="INVALID")

    with pytest.raises(ValueError):
        Settings(storage_backend="redis")

    with pytest.raises(ValueError):
        Settings(api_base_url="ftp://example.com")

    with pytest.raises(ValueError):
        Settings(min_row_limit=100, max_row_limit=50)


@pytest.mark.unit
def test_settings_properties():
    """Test computed properties."""
    settings = Settings(max_file_size_mb=50, accepted_extensions="CSV, .tsv,", allowed_origins="http://a, http://b")

    assert settings.max_file_size_bytes == 50 * 1024 * 1024
    assert settings.accepted_extensions_list == [".csv", ".tsv"]
    assert settings.allowed_origins_list == ["http://a", "http://b"]


@pytest.mark.unit
def test_settings_singleton(clean_env):
    """Test that get_settings returns singleton."""
    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
    assert reload_settings() is not settings1
