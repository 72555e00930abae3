"""Tests for SetupTools."""

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from coastal_knowledge.config import Config
from coastal_knowledge.tools.setup_tools import SETTINGS_REGISTRY, SetupTools


class TestGetSetupStatus:
    """Tests for get_setup_status method."""

    def test_get_setup_status_no_config(self, tmp_path):
        """Test status when config file doesn't exist."""
        config_path = tmp_path / "nonexistent.toml"
        tools = SetupTools(str(config_path))

        result = tools.get_setup_status()

        assert result.success is True
        assert result.config_file_exists is False
        assert len(result.settings) == len(SETTINGS_REGISTRY)
        assert not any(s.configured for s in result.settings)
        assert "defaults" in result.message

    def test_get_setup_status_partial_config(self, tmp_path):
        """Test status with partially configured file."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("""
[services]
memory_server_type = "rest"

[session]
user_name = ""
""")
        tools = SetupTools(str(config_path))

        result = tools.get_setup_status()
        by_name = {s.name: s for s in result.settings}

        assert result.config_file_exists is True
        assert by_name["services.memory_server_type"].configured is True
        assert by_name["services.memory_server_type"].current_value == "rest"
        assert by_name["session.user_name"].configured is False
        assert by_name["log.level"].default_value == "INFO"

    def test_env_var_config_path(self, tmp_path, monkeypatch):
        """The config path can come from the environment."""
        config_path = tmp_path / "env.toml"
        monkeypatch.setenv("COASTAL_KNOWLEDGE_CONFIG", str(config_path))

        tools = SetupTools()

        assert tools.config_path == config_path


class TestConfigure:
    """Tests for configure method."""

    def test_configure_valid_setting(self, tmp_path):
        """Test configuring a valid setting."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("")
        tools = SetupTools(str(config_path))

        result = tools.configure("session.user_name", "claims_admin")

        assert result.success is True
        assert result.setting_name == "session.user_name"
        assert result.old_value is None
        assert result.new_value == "claims_admin"

        with open(config_path, "rb") as f:
            assert tomllib.load(f)["session"]["user_name"] == "claims_admin"

    def test_configure_preserves_other_settings(self, tmp_path):
        """Existing settings survive a write."""
        config_path = tmp_path / "config.toml"
        config_path.write_text('[log]\nlevel = "DEBUG"\n')
        tools = SetupTools(str(config_path))

        tools.configure("services.memory_server_type", "rest")

        config = Config.load(str(config_path))
        assert config.log.level == "DEBUG"
        assert config.memory_type == "rest"

    def test_configure_invalid_setting(self, tmp_path):
        """Test configuring an invalid setting name."""
        tools = SetupTools(str(tmp_path / "config.toml"))

        result = tools.configure("invalid.setting", "value")

        assert result.success is False
        assert "Unknown setting" in result.message

    def test_configure_invalid_url(self, tmp_path):
        """Test configuring URL with invalid value."""
        tools = SetupTools(str(tmp_path / "config.toml"))

        result = tools.configure("services.memory_server_url", "not-a-url")

        assert result.success is False
        assert "http://" in result.validation_errors[0]

    def test_configure_choice(self, tmp_path):
        """Only listed backends are accepted."""
        tools = SetupTools(str(tmp_path / "config.toml"))

        assert tools.configure("services.memory_server_type", "mcp").success is False
        assert tools.configure("services.memory_server_type", "local").success is True

    def test_configure_log_level_uppercase(self, tmp_path):
        """Test log level is converted to uppercase."""
        tools = SetupTools(str(tmp_path / "config.toml"))

        result = tools.configure("log.level", "debug")

        assert result.success is True
        assert result.new_value == "DEBUG"

    def test_configure_numbers(self, tmp_path):
        """Numeric settings are validated and stored as numbers."""
        config_path = tmp_path / "config.toml"
        tools = SetupTools(str(config_path))

        assert tools.configure("selection.conflict_min_shared_tokens", "4").success is True
        assert tools.configure("selection.conflict_min_shared_tokens", "0").success is False
        assert tools.configure("session.ttl_hours", "abc").success is False
        assert tools.configure("services.max_retries", "0").success is True
        assert tools.configure("services.request_timeout", "2.5").success is True

        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        assert data["selection"]["conflict_min_shared_tokens"] == 4
        assert data["services"]["max_retries"] == 0
        assert data["services"]["request_timeout"] == 2.5

    def test_get_available_settings(self, tmp_path):
        """All registry keys are listed."""
        tools = SetupTools(str(tmp_path / "config.toml"))

        assert tools.get_available_settings() == list(SETTINGS_REGISTRY)
