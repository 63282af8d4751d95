"""Tests for the dashboard configuration checks."""

import pytest

from inventory_dashboard.config import Config, ConfigurationError


def _config(tmp_path, **overrides):
    attributes = {"SECRET_KEY": "s3cret", "LOG_DIR": str(tmp_path / "logs"), "LOG_LEVEL": "INFO"}
    attributes.update(overrides)
    return type("TestConfig", (Config,), attributes)


def test_valid_configuration(tmp_path):
    assert _config(tmp_path).validate_configuration() == []


def test_default_secret_key_is_a_warning(tmp_path):
    config = _config(tmp_path, SECRET_KEY="dev-secret-key-change-in-production")
    messages = config.validate_configuration()

    assert len(messages) == 1
    assert messages[0].startswith("WARNING")
    config.init_app(None)
    assert (tmp_path / "logs").is_dir()


@pytest.mark.parametrize("overrides", [
    {"PORT": 70000},
    {"MONGODB_CONNECTION_STRING": "localhost:27017"},
    {"MONGODB_DATABASE_NAME": "bad.name"},
    {"LOG_LEVEL": "VERBOSE"},
])
def test_errors_stop_initialization(tmp_path, overrides):
    config = _config(tmp_path, **overrides)

    with pytest.raises(ConfigurationError):
        config.init_app(None)


def test_missing_scan_config_dir_is_a_warning(tmp_path):
    messages = _config(tmp_path, SCAN_CONFIG_DIR=str(tmp_path / "absent")).validate_configuration()
    assert [message.split(":")[0] for message in messages] == ["WARNING"]
