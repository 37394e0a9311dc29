import json

import keyring
import pytest

from fhome_protocol import FHOME_URL
from fhome_protocol.config import (
    ConfigContext,
    EnvPassphraseConfig,
    FhomeClientConfig,
    KeyringPassphraseConfig,
    LiteralPassphraseConfig,
    PassphraseConfig,
    candidate_config_files,
    load_client_config,
)

FULL_ENV = {
    "FHOME_EMAIL": "a@b.com",
    "FHOME_CLOUD_PASSWORD": "cloud-secret",
    "FHOME_RESOURCE_PASSWORD": "resource-secret",
}


def write_config(tmp_path, data, name="config.json"):
    path = tmp_path / name
    path.write_text(json.dumps({"cfg_class": "FhomeClientConfig", "data": data}))
    return str(path)


def test_from_env():
    cfg = FhomeClientConfig.from_env(os_environ=FULL_ENV)
    cfg.verify()
    assert cfg.email == "a@b.com"
    assert cfg.url == FHOME_URL
    assert cfg.handshake_timeout == 5.0
    assert cfg.get_cloud_password() == "cloud-secret"
    assert cfg.get_resource_password() == "resource-secret"
    assert cfg.config_file is None


@pytest.mark.parametrize("missing", ["FHOME_EMAIL", "FHOME_CLOUD_PASSWORD", "FHOME_RESOURCE_PASSWORD"])
def test_from_env_reports_missing_variable(missing):
    env = {k: v for k, v in FULL_ENV.items() if k != missing}
    cfg = FhomeClientConfig.from_env(os_environ=env)
    with pytest.raises(ValueError, match=f"{missing} is not set"):
        cfg.verify()


def test_describe_omits_passwords():
    cfg = FhomeClientConfig.from_env(os_environ=FULL_ENV)
    text = json.dumps(cfg.describe())
    assert "a@b.com" in text
    assert "FHOME_CLOUD_PASSWORD" in text
    assert "cloud-secret" not in text
    assert "resource-secret" not in text


def test_file_with_env_references(tmp_path):
    config_file = write_config(tmp_path, {
        "email": "${env:MY_EMAIL}",
        "url": "wss://example.test/ws/",
        "handshake_timeout": 2.5,
        "cloud_passphrase_cfg": {
            "cfg_class": "LiteralPassphraseConfig",
            "data": {"passphrase": "${env:MY_CLOUD}"},
        },
        "resource_passphrase_cfg": {
            "cfg_class": "EnvPassphraseConfig",
            "data": {"var": "MY_RESOURCE"},
        },
    })
    ctx = ConfigContext(os_environ={"MY_EMAIL": "me@example.com", "MY_CLOUD": "c", "MY_RESOURCE": "r"})
    cfg = ctx.load_file(config_file, required_type=FhomeClientConfig)
    cfg.verify()
    assert cfg.email == "me@example.com"
    assert cfg.url == "wss://example.test/ws/"
    assert cfg.handshake_timeout == 2.5
    assert cfg.get_cloud_password() == "c"
    assert cfg.get_resource_password() == "r"
    assert cfg.config_file == str(tmp_path / "config.json")
    assert cfg.config_dir == str(tmp_path)
    assert isinstance(cfg.cloud_passphrase_cfg, LiteralPassphraseConfig)


def test_passwords_default_to_environment(tmp_path):
    config_file = write_config(tmp_path, {"email": "me@example.com"})
    ctx = ConfigContext(os_environ=FULL_ENV)
    cfg = ctx.load_file(config_file, required_type=FhomeClientConfig)
    assert isinstance(cfg.resource_passphrase_cfg, EnvPassphraseConfig)
    assert cfg.resource_passphrase_cfg.var == "FHOME_RESOURCE_PASSWORD"
    assert cfg.get_resource_password() == "resource-secret"


def test_undefined_reference_is_an_error(tmp_path):
    config_file = write_config(tmp_path, {"email": "${env:NOT_DEFINED}"})
    ctx = ConfigContext(os_environ={})
    with pytest.raises(KeyError):
        ctx.load_file(config_file, required_type=FhomeClientConfig)


def test_config_dir_reference(tmp_path):
    ctx = ConfigContext(os_environ={}).push_config_file(str(tmp_path / "config.json"))
    assert ctx.render_template_json_data({"path": ["${config_dir}/x"], "n": 3}) == {
        "path": [f"{tmp_path}/x"],
        "n": 3,
    }


def test_newer_config_version_is_rejected():
    ctx = ConfigContext(os_environ={})
    with pytest.raises(RuntimeError):
        ctx.loads(json.dumps({"version": "99.0.0", "cfg_class": "FhomeClientConfig", "data": {}}))


def test_wrong_config_class_is_rejected():
    ctx = ConfigContext(os_environ={})
    with pytest.raises(RuntimeError):
        ctx.load_json_data(
            {"cfg_class": "LiteralPassphraseConfig", "data": {"passphrase": "x"}},
            required_type=FhomeClientConfig,
        )


def test_env_passphrase_falls_back_to_default():
    ctx = ConfigContext(os_environ={})
    cfg = ctx.load_json_data(
        {
            "cfg_class": "EnvPassphraseConfig",
            "data": {
                "var": "UNSET_VAR",
                "default_passphrase_cfg": {"cfg_class": "LiteralPassphraseConfig", "data": {"passphrase": "fallback"}},
            },
        },
        required_type=PassphraseConfig,
    )
    assert cfg.get_passphrase() == "fallback"
    assert cfg.passphrase_exists()


def test_env_passphrase_missing():
    ctx = ConfigContext(os_environ={})
    cfg = ctx.load_json_data({"cfg_class": "EnvPassphraseConfig", "data": {"var": "UNSET_VAR"}})
    assert not cfg.passphrase_exists()
    with pytest.raises(KeyError, match="UNSET_VAR is not set"):
        cfg.get_passphrase()


def test_keyring_passphrase(monkeypatch):
    stored = {("fhome", "a@b.com"): "from-keyring"}
    monkeypatch.setattr(keyring, "get_password", lambda service, key: stored.get((service, key)))
    monkeypatch.setattr(keyring, "set_password", lambda service, key, value: stored.__setitem__((service, key), value))
    ctx = ConfigContext(os_environ={})
    cfg = ctx.load_json_data(
        {"cfg_class": "KeyringPassphraseConfig", "data": {"key": "a@b.com"}},
        required_type=KeyringPassphraseConfig,
    )
    assert cfg.get_passphrase() == "from-keyring"
    cfg.set_passphrase("changed")
    assert cfg.get_passphrase() == "changed"
    assert "from-keyring" not in cfg.describe()


def test_keyring_passphrase_missing(monkeypatch):
    monkeypatch.setattr(keyring, "get_password", lambda service, key: None)
    ctx = ConfigContext(os_environ={})
    cfg = ctx.load_json_data({"cfg_class": "KeyringPassphraseConfig", "data": {"service": "other", "key": "k"}})
    with pytest.raises(KeyError):
        cfg.get_passphrase()


def test_load_client_config_prefers_explicit_file(tmp_path):
    config_file = write_config(tmp_path, {"email": "file@example.com"})
    cfg = load_client_config(config_file, ctx=ConfigContext(os_environ=FULL_ENV))
    assert cfg.email == "file@example.com"


def test_load_client_config_falls_back_to_environment():
    cfg = load_client_config(system=False, user=False, ctx=ConfigContext(os_environ=FULL_ENV))
    assert cfg.config_file is None
    assert cfg.email == "a@b.com"
    assert cfg.get_cloud_password() == "cloud-secret"


def test_candidate_config_files():
    assert candidate_config_files(system=False, user=False) == []
    assert candidate_config_files(user=False) == ["/etc/fhome/config.json"]
    (user_file,) = candidate_config_files(system=False)
    assert user_file.endswith("/.config/fhome/config.json")


def test_keyring_passphrase_delete(monkeypatch):
    stored = {("fhome", "a@b.com"): "from-keyring"}
    monkeypatch.setattr(keyring, "get_password", lambda service, key: stored.get((service, key)))
    monkeypatch.setattr(keyring, "delete_password", lambda service, key: stored.pop((service, key)))
    ctx = ConfigContext(os_environ={})
    cfg = ctx.load_json_data(
        {"cfg_class": "KeyringPassphraseConfig", "data": {"key": "a@b.com"}},
        required_type=KeyringPassphraseConfig,
    )
    assert cfg.passphrase_exists()
    cfg.delete_passphrase()
    assert stored == {}
    assert not cfg.passphrase_exists()
