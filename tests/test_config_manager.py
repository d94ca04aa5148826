import builtins
from pathlib import Path

import pytest

from weave.core.config_manager import ConfigManager


@pytest.fixture()
def config_env(tmp_path):
    return ConfigManager(overrides_dir=tmp_path / "state" / "config_overrides")


def _force_permission_error(config_path: Path, monkeypatch):
    original_open = builtins.open

    def fake_open(path, mode='r', *args, **kwargs):
        if Path(path) == config_path and 'w' in mode and 'r' not in mode:
            raise PermissionError("mock permission denied")
        return original_open(path, mode, *args, **kwargs)

    monkeypatch.setattr('builtins.open', fake_open)
    return original_open


def test_read_config_parses_host_keys(tmp_path, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text(
        "# host settings\n"
        "host = 0.0.0.0\n"
        "port = 9999  # proxy port\n"
        "emulator_preset = \"phone-watch\"\n"
        "keep_live = yes\n"
        "time_range_ms = 750.5\n"
        "not a setting\n",
        encoding='utf-8',
    )

    config = config_env.read_config(config_path)
    assert config == {
        'host': '0.0.0.0',
        'port': '9999',
        'emulator_preset': 'phone-watch',
        'keep_live': 'yes',
        'time_range_ms': '750.5',
    }
    assert config_env.get_int(config, 'port') == 9999
    assert config_env.get_bool(config, 'keep_live') is True
    assert config_env.get_float(config, 'time_range_ms') == 750.5
    assert config_env.get_str(config, 'spec_path', 'device/deviceSpec.json') == 'device/deviceSpec.json'


def test_typed_getters_fall_back_on_bad_values(config_env, caplog):
    config = {'port': 'abc', 'time_range_ms': 'soon'}
    assert config_env.get_int(config, 'port', 9999) == 9999
    assert config_env.get_float(config, 'time_range_ms', 1000.0) == 1000.0
    assert config_env.get_bool(config, 'missing', True) is True
    assert "Invalid int value for port" in caplog.text


def test_missing_config_reads_empty(tmp_path, config_env):
    assert config_env.read_config(tmp_path / "absent.txt") == {}
    assert config_env.write_config(tmp_path / "absent.txt", {'port': 1}) is False


def test_write_config_updates_and_appends(tmp_path, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text("# comment\n  port = 9999\n", encoding='utf-8')

    assert config_env.write_config(config_path, {'port': 8080, 'keep_live': False}) is True
    text = config_path.read_text(encoding='utf-8')
    assert text == "# comment\n  port = 8080\nkeep_live = false\n"


def test_write_config_falls_back_to_override(tmp_path, monkeypatch, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text("keep_live = true\n", encoding='utf-8')

    original_open = _force_permission_error(config_path, monkeypatch)

    result = config_env.write_config(config_path, {'keep_live': False, 'port': 9000})
    assert result is True

    override_path = config_env.override_path(config_path)
    assert override_path.exists()

    # Base file remains unchanged because write was redirected to override
    assert "keep_live = true" in config_path.read_text(encoding='utf-8')

    # Reading config merges overrides
    merged = config_env.read_config(config_path)
    assert merged['keep_live'] == 'false'
    assert merged['port'] == '9000'

    monkeypatch.setattr('builtins.open', original_open, raising=False)


def test_read_config_includes_override_values(tmp_path, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text("keep_live = true\nport = 10\n", encoding='utf-8')

    override_path = config_env.override_path(config_path)
    override_path.parent.mkdir(parents=True, exist_ok=True)
    override_path.write_text("keep_live = false\nport = 99\nextra = custom\n", encoding='utf-8')

    merged = config_env.read_config(config_path)
    assert merged['keep_live'] == 'false'
    assert merged['port'] == '99'
    assert merged['extra'] == 'custom'


def test_successful_write_removes_override(tmp_path, monkeypatch, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text("keep_live = true\n", encoding='utf-8')

    original_open = _force_permission_error(config_path, monkeypatch)
    assert config_env.write_config(config_path, {'keep_live': False}) is True

    override_path = config_env.override_path(config_path)
    assert override_path.exists()

    # Allow writes again and ensure override is removed after sync write
    monkeypatch.setattr('builtins.open', original_open, raising=False)
    assert config_env.write_config(config_path, {'keep_live': True}) is True
    assert not override_path.exists()


@pytest.mark.asyncio
async def test_async_read_merges_overrides(tmp_path, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text("port = 9999\nhost = 127.0.0.1\n", encoding='utf-8')

    override_path = config_env.override_path(config_path)
    override_path.parent.mkdir(parents=True, exist_ok=True)
    override_path.write_text("port = 7000\n", encoding='utf-8')

    config = await config_env.read_config_async(config_path)
    assert config == {'port': '7000', 'host': '127.0.0.1'}


def test_host_config_from_file(tmp_path, config_env):
    config_path = tmp_path / "config.txt"
    config_path.write_text(
        "spec_path = device/custom.json\n"
        "port = 8080\n"
        "log_level = DEBUG\n"
        "log_components = EventManager=debug\n"
        "emulator_preset =\n"
        "keep_live = false\n"
        "theme = dark\n",
        encoding='utf-8',
    )

    host_config = config_env.load_host_config(config_path)
    assert host_config.spec_path == Path("device/custom.json")
    assert host_config.host == "127.0.0.1"
    assert host_config.port == 8080
    assert host_config.log_level == "debug"
    assert host_config.log_components == "EventManager=debug"
    assert host_config.time_range_ms == 1000.0
    assert host_config.emulator_preset is None
    assert host_config.keep_live is False
    assert host_config.extra == {'theme': 'dark'}


@pytest.mark.asyncio
async def test_host_config_defaults_without_file(tmp_path, config_env):
    host_config = await config_env.load_host_config_async(tmp_path / "absent.txt")
    assert host_config.port == 9999
    assert host_config.console_output is True
    assert host_config.spec_path is None
