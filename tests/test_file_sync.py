import os
import sys
import zipfile

import pytest

from bdsupdater.updater.file_sync import extract_archive

from helpers import make_archive


@pytest.fixture
def install_dir(tmp_path):
    path = tmp_path / 'bedrock'
    path.mkdir()
    (path / 'server.properties').write_text('level-name=MyWorld\n')
    (path / 'bedrock_server').write_text('old binary')
    return path


def write_archive(tmp_path, entries, modes=None):
    archive = tmp_path / 'update.zip'
    archive.write_bytes(make_archive(entries, modes))
    return str(archive)


def test_overwrites_files_and_creates_directories(tmp_path, install_dir):
    archive = write_archive(tmp_path, {
        'bedrock_server': b'new binary',
        'definitions/': None,
        'definitions/persona/skin.json': b'{}',
    })

    result = extract_archive(archive, str(install_dir), ['server.properties'])

    assert (install_dir / 'bedrock_server').read_text() == 'new binary'
    assert (install_dir / 'definitions' / 'persona' / 'skin.json').read_text() == '{}'
    assert result['files_written'] == 2


def test_ignored_names_are_preserved_at_any_depth(tmp_path, install_dir):
    nested = install_dir / 'worlds' / 'MyWorld'
    nested.mkdir(parents=True)
    (nested / 'server.properties').write_text('keep me')

    archive = write_archive(tmp_path, {
        'server.properties': b'level-name=Fresh\n',
        'worlds/MyWorld/server.properties': b'fresh',
        'config/default/permissions.json': b'[]',
        'bedrock_server': b'new binary',
    })

    result = extract_archive(archive, str(install_dir), ['server.properties', 'permissions.json'])

    assert (install_dir / 'server.properties').read_text() == 'level-name=MyWorld\n'
    assert (nested / 'server.properties').read_text() == 'keep me'
    assert not (install_dir / 'config' / 'default' / 'permissions.json').exists()
    assert result['files_preserved'] == 3
    assert result['files_written'] == 1


@pytest.mark.skipif(sys.platform == 'win32', reason='unix permissions')
def test_unix_permissions_are_applied(tmp_path, install_dir):
    archive = write_archive(tmp_path, {'bedrock_server': b'#!/bin/sh\n'}, modes={'bedrock_server': 0o755})

    extract_archive(archive, str(install_dir))

    assert os.access(install_dir / 'bedrock_server', os.X_OK)


def test_entries_outside_install_dir_are_skipped(tmp_path, install_dir):
    archive = write_archive(tmp_path, {'../escaped.txt': b'nope', 'ok.txt': b'yes'})

    result = extract_archive(archive, str(install_dir))

    assert not (tmp_path / 'escaped.txt').exists()
    assert (install_dir / 'ok.txt').read_text() == 'yes'
    assert result['files_skipped'] == 1


def test_invalid_archive_raises(tmp_path, install_dir):
    archive = tmp_path / 'broken.zip'
    archive.write_bytes(b'this is not a zip')

    with pytest.raises(zipfile.BadZipFile):
        extract_archive(str(archive), str(install_dir))
