# tests/test_config.py
import pytest
import yaml

from girdeps.config import AppConfig, ConfigError, load_config


class TestLoadConfig:
    def test_loads_valid_config(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "catalog": {"extra": ["more.yaml", "/abs/other.yaml"]},
            "install": {"escalators": ["sudo", "pkexec"], "use_packagekit": False},
            "terminal": {"preference": ["gnome-terminal"]},
            "platform": {"os_release": "/tmp/os-release"},
            "debug": {"enabled": True},
        }))
        config = load_config(str(config_file))
        assert config.catalog.extra == [str(tmp_path / "more.yaml"), "/abs/other.yaml"]
        assert config.install.escalators == ["sudo", "pkexec"]
        assert config.install.use_packagekit is False
        assert config.terminal.preference == ["gnome-terminal"]
        assert config.platform.os_release == "/tmp/os-release"
        assert config.debug.enabled is True

    def test_none_gives_defaults(self):
        config = load_config(None)
        assert config == AppConfig()
        assert config.install.escalators == ["pkexec"]
        assert config.terminal.preference == ["kgx", "gnome-terminal", "xdg-terminal-exec"]

    def test_empty_file_gives_defaults(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        assert load_config(str(config_file)) == AppConfig()

    def test_null_sections(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("install:\nterminal:\n")
        config = load_config(str(config_file))
        assert config.install.use_packagekit is True

    def test_missing_file_raises(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("/nonexistent/config.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("install: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(str(config_file))

    def test_unknown_terminal(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"terminal": {"preference": ["xterm"]}}))
        with pytest.raises(ConfigError, match="xterm"):
            load_config(str(config_file))

    def test_empty_escalators(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"install": {"escalators": []}}))
        with pytest.raises(ConfigError, match="escalators"):
            load_config(str(config_file))

    def test_section_must_be_mapping(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"install": ["pkexec"]}))
        with pytest.raises(ConfigError, match="install"):
            load_config(str(config_file))

    def test_extra_must_be_list(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"catalog": {"extra": "one.yaml"}}))
        with pytest.raises(ConfigError, match="catalog.extra"):
            load_config(str(config_file))

    @pytest.mark.parametrize("section, key, value", [
        ("install", "use_packagekit", "false"),
        ("debug", "enabled", "no"),
        ("debug", "trace", 1),
        ("debug", "verbose", None),
    ])
    def test_flags_must_be_booleans(self, tmp_path, section, key, value):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({section: {key: value}}))
        with pytest.raises(ConfigError, match=f"{section}.{key} must be true or false"):
            load_config(str(config_file))

    def test_unquoted_yaml_booleans(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("install:\n  use_packagekit: false\ndebug:\n  trace: true\n")
        config = load_config(str(config_file))
        assert config.install.use_packagekit is False
        assert config.debug.trace is True
