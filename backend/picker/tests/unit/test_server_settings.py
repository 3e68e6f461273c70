import pytest
from pydantic import ValidationError

from picker.server.settings import PickerServerSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("PICKER_CORS_ORIGINS", "PICKER_LOG_DIR", "PICKER_ADMIN_API_KEY", "PICKER_DATABASE_PATH"):
        monkeypatch.delenv(name, raising=False)


class TestPickerServerSettings:
    def test_defaults(self):
        settings = PickerServerSettings(_env_file=None)
        assert settings.database_path == "backend/data/picker.db"
        assert settings.log_dir == "backend/logs/picker"
        assert settings.cors_origins == []
        assert settings.admin_api_key is None
        assert settings.ws_allowed_origin is None
        assert settings.roster_cache_ttl_seconds == 6 * 60 * 60

    def test_admin_key_from_env(self, monkeypatch):
        monkeypatch.setenv("PICKER_ADMIN_API_KEY", "s3cret")
        assert PickerServerSettings(_env_file=None).admin_api_key == "s3cret"

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("PICKER_CORS_ORIGINS", '["http://x.com","http://y.com"]')
        assert PickerServerSettings(_env_file=None).cors_origins == ["http://x.com", "http://y.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("PICKER_CORS_ORIGINS", "http://x.com,http://y.com")
        assert PickerServerSettings(_env_file=None).cors_origins == ["http://x.com", "http://y.com"]

    def test_cors_origins_empty_array_allowed(self, monkeypatch):
        monkeypatch.setenv("PICKER_CORS_ORIGINS", "[]")
        assert PickerServerSettings(_env_file=None).cors_origins == []

    def test_cors_origins_blank_rejected(self, monkeypatch):
        monkeypatch.setenv("PICKER_CORS_ORIGINS", " ")
        with pytest.raises(ValidationError, match="cors_origins"):
            PickerServerSettings(_env_file=None)

    def test_ttl_lower_bound(self):
        with pytest.raises(ValidationError, match="roster_cache_ttl_seconds"):
            PickerServerSettings(_env_file=None, roster_cache_ttl_seconds=5)

    def test_empty_database_path_rejected(self):
        with pytest.raises(ValidationError, match="database_path"):
            PickerServerSettings(_env_file=None, database_path="")
