import json
from datetime import time

import pytest

from bdsupdater import config_loader
from bdsupdater.models.update import InstallationMode, UpdateConfig, parse_time_of_day


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config_loader, 'AUTOUPDATE_CONFIG_PATH', str(tmp_path / 'config' / 'autoupdate.json'))
    monkeypatch.setattr(config_loader, 'SERVER_CONFIG_PATH', str(tmp_path / 'config' / 'server.json'))
    config_loader.clear_config_cache()
    yield tmp_path / 'config'
    config_loader.clear_config_cache()


def test_defaults_are_written_on_first_run(config_dir):
    config = config_loader.load_update_config()

    assert config == UpdateConfig()
    assert config.check_interval == 60
    assert config.installation_mode is InstallationMode.IDLE
    assert config.installation_time == time(4, 0)
    assert config.ignore_files == {'server.properties', 'whitelist.json', 'permissions.json'}

    saved = json.loads((config_dir / 'autoupdate.json').read_text())
    assert saved == config_loader.DEFAULT_AUTOUPDATE_CONFIG


def test_file_values_override_defaults(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / 'autoupdate.json').write_text(json.dumps({
        'UpdateCheckInterval': 15.5,
        'InstallationMode': 'scheduled',
        'InstallationTime': '03:30',
        'IgnoreFiles': ['allowlist.json'],
    }))

    config = config_loader.load_update_config()

    assert config.check_interval == 15.5
    assert config.check_interval_seconds == 930
    assert config.installation_mode is InstallationMode.SCHEDULED
    assert config.installation_time == time(3, 30)
    assert config.ignore_files == {'allowlist.json'}


def test_config_is_cached_until_reload(config_dir):
    first = config_loader.get_autoupdate_config()
    (config_dir / 'autoupdate.json').write_text(json.dumps({'InstallationMode': 'immediate'}))

    assert config_loader.get_autoupdate_config() is first
    assert config_loader.get_autoupdate_config(force_reload=True)['InstallationMode'] == 'immediate'


def test_broken_json_falls_back_to_defaults(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / 'server.json').write_text('{not json')

    config = config_loader.get_server_config()

    assert config == config_loader.DEFAULT_SERVER_CONFIG


def test_unknown_mode_falls_back_to_idle():
    assert InstallationMode.parse('whenever') is InstallationMode.IDLE
    assert InstallationMode.parse(None) is InstallationMode.IDLE
    assert InstallationMode.parse(' Immediate ') is InstallationMode.IMMEDIATE


@pytest.mark.parametrize('raw', [0, -5, 'soon', None])
def test_invalid_interval_uses_default(raw):
    assert UpdateConfig.from_dict({'UpdateCheckInterval': raw}).check_interval == 60


def test_invalid_time_uses_default():
    assert UpdateConfig.from_dict({'InstallationTime': '25:99'}).installation_time == time(4, 0)


def test_time_of_day_accepts_seconds():
    assert parse_time_of_day('04:00') == time(4, 0)
    assert parse_time_of_day('23:59:30') == time(23, 59, 30)
    with pytest.raises(ValueError):
        parse_time_of_day('4 o\'clock')


def test_update_config_is_immutable():
    config = UpdateConfig()
    with pytest.raises(AttributeError):
        config.check_interval = 5
