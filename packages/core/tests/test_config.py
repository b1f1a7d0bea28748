"""Tests for configuration loading."""

import pytest

from yx_core.config import DEFAULT_BASE_URL, TOKEN_ENV_VAR, load_config, resolve_organization_id
from yx_core.errors import YxError


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["base_url"] == DEFAULT_BASE_URL
    assert config["timeout"] == 30
    assert config["organization_id"] is None
    assert config["token"] is None


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("organization_id: org-1\ntimeout: 10\n")
    config = load_config(config_path=str(cfg))
    assert config["organization_id"] == "org-1"
    assert config["timeout"] == 10


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["timeout"] == 30


def test_non_mapping_config_rejected(tmp_path):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("- a\n- b\n")
    with pytest.raises(YxError, match="expected a mapping"):
        load_config(config_path=str(cfg))


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("organization_id: org-1\n")
    config = load_config(config_path=str(cfg), cli_overrides={"organization_id": "org-2"})
    assert config["organization_id"] == "org-2"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("organization_id: org-1\n")
    config = load_config(config_path=str(cfg), cli_overrides={"organization_id": None})
    assert config["organization_id"] == "org-1"


def test_env_token_wins_over_file(tmp_path, monkeypatch):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text("token: from-file\n")
    monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
    assert load_config(config_path=str(cfg))["token"] == "from-env"


@pytest.mark.parametrize("value", ["0", "-1", "abc", "true"])
def test_invalid_timeout_rejected(tmp_path, value):
    cfg = tmp_path / ".yx.yml"
    cfg.write_text(f"timeout: {value}\n")
    with pytest.raises(YxError, match="Invalid timeout"):
        load_config(config_path=str(cfg))


class TestResolveOrganizationId:
    def test_explicit_org_wins(self):
        assert resolve_organization_id({"organization_id": "cfg"}, "cli") == "cli"

    def test_falls_back_to_config(self):
        assert resolve_organization_id({"organization_id": "cfg"}) == "cfg"

    def test_missing_raises(self):
        with pytest.raises(YxError, match="Missing organization ID"):
            resolve_organization_id({"organization_id": "  "})
