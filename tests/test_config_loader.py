"""Tests for the config loader module."""

import os

import pytest
import yaml

from vertex_gateway.config_loader import (
    DEFAULT_ALLOWED_MODELS,
    DEFAULT_ANTHROPIC_VERSION,
    GatewaySettings,
    _substitute_env_vars,
    assert_settings,
    load_config,
    load_yaml_config,
    parse_model_list,
)
from vertex_gateway.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def no_config_env(monkeypatch):
    monkeypatch.delenv("VERTEX_GATEWAY_CONFIG", raising=False)


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    """Tests for building settings from YAML and environment variables."""

    def test_loads_yaml_sections(self, tmp_path):
        path = _write_config(
            tmp_path,
            {
                "vertex": {
                    "project_id": "yaml-project",
                    "location": "us-east5",
                    "allowed_models": ["claude-a", "claude-b"],
                    "default_max_tokens": 1024,
                },
                "server": {"port": 8080, "debug": True},
            },
        )

        settings = load_config(path, environ={})

        assert settings.project_id == "yaml-project"
        assert settings.location == "us-east5"
        assert settings.allowed_models == ["claude-a", "claude-b"]
        assert settings.default_model == "claude-a"
        assert settings.default_max_tokens == 1024
        assert settings.port == 8080
        assert settings.debug is True
        assert settings.anthropic_version == DEFAULT_ANTHROPIC_VERSION

    def test_environment_wins_over_yaml(self, tmp_path):
        path = _write_config(tmp_path, {"vertex": {"project_id": "yaml-project"}})
        environ = {
            "VERTEX_PROJECT_ID": "env-project",
            "VERTEX_ALLOWED_MODELS": "claude-a, claude-b,,",
            "VERTEX_DEFAULT_MODEL": "claude-b",
            "VERTEX_ANTHROPIC_VERSION": "vertex-2099-01-01",
            "PORT": "4000",
            "PROXY_API_KEY": "secret",
        }

        settings = load_config(path, environ=environ)

        assert settings.project_id == "env-project"
        assert settings.allowed_models == ["claude-a", "claude-b"]
        assert settings.default_model == "claude-b"
        assert settings.anthropic_version == "vertex-2099-01-01"
        assert settings.port == 4000
        assert settings.proxy_api_key == "secret"

    def test_defaults_without_file(self):
        settings = load_config(environ={"VERTEX_PROJECT_ID": "p"})

        assert settings.location == "global"
        assert settings.allowed_models == DEFAULT_ALLOWED_MODELS
        assert settings.default_model == DEFAULT_ALLOWED_MODELS[0]
        assert settings.port == 3000
        assert settings.debug is False
        assert settings.proxy_api_key is None

    def test_private_key_newlines_unescaped(self):
        settings = load_config(
            environ={"VERTEX_PRIVATE_KEY": "-----BEGIN-----\\nabc\\n-----END-----\\n"}
        )

        assert settings.private_key == "-----BEGIN-----\nabc\n-----END-----\n"

    @pytest.mark.parametrize(
        "environ,expected",
        [
            ({"DEBUG": "true"}, True),
            ({"DEBUG": "0"}, False),
            ({"NODE_ENV": "development"}, True),
            ({"NODE_ENV": "production"}, False),
        ],
    )
    def test_debug_flag(self, environ, expected):
        assert load_config(environ=environ).debug is expected

    def test_invalid_port_falls_back(self):
        assert load_config(environ={"PORT": "not-a-port"}).port == 3000

    def test_raises_error_for_missing_config(self):
        """Test that error is raised for a missing explicit config file."""
        with pytest.raises(RuntimeError, match="Config file not found"):
            load_config("/nonexistent/path/config.yaml", environ={})

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, {"vertex": {"project_id": "from-env-path"}})
        monkeypatch.setenv("VERTEX_GATEWAY_CONFIG", path)

        assert load_config(environ={}).project_id == "from-env-path"


class TestEnvSubstitution:
    """Tests for ${VAR} substitution from .env files and the environment."""

    def test_substitutes_from_dotenv_without_touching_environ(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GATEWAY_TEST_PROJECT", raising=False)
        (tmp_path / ".env").write_text("GATEWAY_TEST_PROJECT=dotenv-project\n", encoding="utf-8")
        path = _write_config(tmp_path, {"vertex": {"project_id": "${GATEWAY_TEST_PROJECT}"}})

        data = load_yaml_config(path)

        assert data["vertex"]["project_id"] == "dotenv-project"
        assert "GATEWAY_TEST_PROJECT" not in os.environ

    def test_substitutes_from_process_environment(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_TEST_REGION", "europe-west1")

        result = _substitute_env_vars({"a": ["$GATEWAY_TEST_REGION", "x-${GATEWAY_TEST_REGION}"]})

        assert result == {"a": ["europe-west1", "x-europe-west1"]}

    def test_unset_variable_keeps_placeholder(self, monkeypatch):
        monkeypatch.delenv("GATEWAY_TEST_UNSET", raising=False)

        assert _substitute_env_vars("${GATEWAY_TEST_UNSET}") == "${GATEWAY_TEST_UNSET}"

    def test_non_strings_untouched(self):
        assert _substitute_env_vars({"port": 3000, "debug": False}) == {"port": 3000, "debug": False}


class TestSettingsValidation:
    def test_missing_names_every_absent_setting(self):
        settings = GatewaySettings()

        with pytest.raises(ConfigurationError) as exc_info:
            assert_settings(settings)

        message = exc_info.value.message
        for name in ("VERTEX_PROJECT_ID", "VERTEX_CLIENT_EMAIL", "VERTEX_PRIVATE_KEY"):
            assert name in message

    def test_credentials_optional(self):
        assert_settings(GatewaySettings(project_id="p"), require_credentials=False)

    def test_empty_allow_list_has_no_default_model(self):
        settings = GatewaySettings(project_id="p", allowed_models=[])

        assert "VERTEX_DEFAULT_MODEL or VERTEX_ALLOWED_MODELS" in settings.missing(False)

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("a,b", ["a", "b"]),
            (["a", " b "], ["a", "b"]),
            ("", ["fallback"]),
            (" , ", ["fallback"]),
            (42, ["fallback"]),
        ],
    )
    def test_parse_model_list(self, value, expected):
        assert parse_model_list(value, ["fallback"]) == expected
