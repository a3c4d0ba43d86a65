import pytest
from pydantic import ValidationError

from sightings.config import Settings


class TestSettings:

    def test_settings_are_frozen(self):
        settings = Settings(admin_pass="s3cret")
        with pytest.raises(ValidationError):
            settings.admin_pass = "changed"

    def test_configured_through_model_config(self):
        """Options live in ``model_config``, not a nested ``Config`` class."""
        assert "Config" not in vars(Settings)
        assert Settings.model_config["env_file"] == ".env"
        assert Settings.model_config["frozen"] is True

    def test_paths_default_under_data_dir(self, tmp_path):
        settings = Settings(data_dir=tmp_path, reports_file=tmp_path / "custom.json")
        assert settings.reports_path() == tmp_path / "custom.json"
        assert settings.redemptions_path() == tmp_path / "redemptions.json"
        assert settings.uploads_path() == tmp_path / "uploads"

    def test_allowed_origins_are_split(self):
        settings = Settings(allowed_origins="http://a.test, http://b.test,")
        assert settings.get_allowed_origins() == ["http://a.test", "http://b.test"]
