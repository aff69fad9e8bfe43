"""Tests for YAML configuration storage."""

from pathlib import Path

import pytest
import yaml

from seal_link.config import Config


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at a temporary location."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


def test_reading_does_not_create_directory(tmp_path: Path, home: Path) -> None:
    """Test a missing config is read as empty without touching disk."""
    config = Config(config_dir=tmp_path / ".seal-link")

    assert config.get("seal.template_id") is None
    assert config.list() == {}
    assert not (tmp_path / ".seal-link").exists()


def test_set_get_unset(tmp_path: Path, home: Path) -> None:
    """Test values round-trip through the YAML file."""
    config = Config(config_dir=tmp_path / ".seal-link")

    config.set("seal.template_id", "tpl-change")
    assert config.get("seal.template_id") == "tpl-change"
    assert yaml.safe_load(config.config_file.read_text()) == {"seal.template_id": "tpl-change"}

    config.unset("seal.template_id")
    assert config.get("seal.template_id", "fallback") == "fallback"


def test_local_falls_back_to_global(tmp_path: Path, home: Path) -> None:
    """Test local config overrides global config, which fills the gaps."""
    Config(use_global=True).set("seal.api_base_url", "https://global.example/api/")
    global_config = Config(use_global=True)
    global_config.set("seal.template_id", "tpl-global")

    local = Config(config_dir=tmp_path / "repo" / ".seal-link")
    local.set("seal.template_id", "tpl-local")

    assert local.get("seal.template_id") == "tpl-local"
    assert local.get("seal.api_base_url") == "https://global.example/api/"
    assert local.list() == {"seal.api_base_url": "https://global.example/api/", "seal.template_id": "tpl-local"}
    assert local.source("seal.template_id") == "local"
    assert local.source("seal.api_base_url") == "global"
    assert local.source("seal.api_token") is None


def test_invalid_yaml_raises(tmp_path: Path, home: Path) -> None:
    """Test a broken config file is reported."""
    config_dir = tmp_path / ".seal-link"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("key: [unclosed\n")

    with pytest.raises(ValueError, match="Failed to load config"):
        Config(config_dir=config_dir)
