import json
from pathlib import Path

import pytest

from bootstrap.settings import DEFAULT_CREDENTIAL, BootstrapSettings, load_settings

OTHER = "11111111-2222-3333-4444-555555555555"


def test_defaults():
    settings = load_settings(env={})

    assert settings.credential == DEFAULT_CREDENTIAL
    assert settings.listen_port == 8080
    assert settings.discovery_attempts == 20
    assert settings.discovery_interval == 2.0
    assert settings.download_timeout == 120.0
    assert settings.work_dir == Path.cwd() / "tmp"


def test_derived_paths(tmp_path):
    settings = BootstrapSettings(work_dir=tmp_path)

    assert settings.archive_path == tmp_path / "sing-box.tar.gz"
    assert settings.cloudflared_path == tmp_path / "cloudflared"
    assert settings.singbox_path == tmp_path / "sing-box"
    assert settings.config_path == tmp_path / "config.json"
    assert settings.log_path == tmp_path / "argo.log"
    assert settings.transport_path == f"/{DEFAULT_CREDENTIAL}"
    assert settings.local_url == "http://localhost:8080"


def test_relative_work_dir_becomes_absolute():
    assert BootstrapSettings(work_dir=Path("run")).work_dir == Path.cwd() / "run"


def test_environment_overrides_credential():
    assert load_settings(env={"UUID": f" {OTHER}\n"}).credential == OTHER


def test_empty_environment_value_keeps_default():
    assert load_settings(env={"UUID": ""}).credential == DEFAULT_CREDENTIAL


def test_precedence_file_env_overrides(tmp_path):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text(f"credential: {OTHER}\nlisten_port: 9000\ndiscovery_attempts: 5\n")

    from_file = load_settings(env={}, settings_file=settings_file)
    from_env = load_settings(env={"UUID": DEFAULT_CREDENTIAL}, settings_file=settings_file)
    overridden = load_settings(env={}, settings_file=settings_file, listen_port=7000, discovery_attempts=None)

    assert (from_file.credential, from_file.listen_port) == (OTHER, 9000)
    assert from_env.credential == DEFAULT_CREDENTIAL
    assert overridden.listen_port == 7000
    assert overridden.discovery_attempts == 5


def test_json_settings_file(tmp_path):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"listen_port": 8443, "link_label": "Edge"}))

    settings = load_settings(env={}, settings_file=settings_file)

    assert settings.listen_port == 8443
    assert settings.link_label == "Edge"


def test_invalid_credential_is_rejected():
    with pytest.raises(ValueError):
        load_settings(env={"UUID": "not-a-uuid"})


def test_non_mapping_settings_file_is_rejected(tmp_path):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        load_settings(env={}, settings_file=settings_file)


def test_artifacts():
    cloudflared, singbox = BootstrapSettings().artifacts()

    assert not cloudflared.is_archive
    assert cloudflared.url.endswith("cloudflared-linux-amd64")
    assert singbox.is_archive
    assert singbox.entry_binary == "sing-box"
    assert singbox.url.endswith("sing-box-1.12.9-linux-amd64.tar.gz")
