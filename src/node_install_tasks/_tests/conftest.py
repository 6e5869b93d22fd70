import os
import stat
import sys
from unittest.mock import patch

import pytest

# Run Qt headless when no display is available
os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

from qtpy.QtCore import QProcess

from node_install_tasks import config


@pytest.fixture(autouse=True)
def _tmp_configuration(tmp_path):
    # Never touch the real ~/.node-install-tasks from the tests
    config_path = tmp_path / '.node-install-tasks'
    with (
        patch.object(config, 'DEFAULT_CONFIG_PATH', config_path),
        patch.object(
            config,
            'DEFAULT_CONFIG_FILE_PATH',
            config_path / 'node-install-tasks.ini',
        ),
    ):
        yield config_path


@pytest.fixture
def project(tmp_path):
    path = tmp_path / 'project'
    path.mkdir()
    (path / 'package.json').write_text('{"name": "project"}')
    return path


@pytest.fixture
def fake_client(tmp_path, monkeypatch):
    """Write a shell script standing in for a client and put it on PATH."""
    if sys.platform == 'win32':
        pytest.skip('Fake clients are POSIX shell scripts.')

    bin_dir = tmp_path / 'bin'
    bin_dir.mkdir()
    monkeypatch.setenv('PATH', f'{bin_dir}{os.pathsep}{os.environ["PATH"]}')

    def _write(name, body):
        script = bin_dir / name
        script.write_text(f'#!/bin/sh\n{body}\n')
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        return script

    return _write


class RecordingProcess(QProcess):
    """A QProcess that records the start request instead of spawning."""

    start_calls = 0

    def start(self, *args, **kwargs):
        self.start_calls += 1


@pytest.fixture
def recording_process(monkeypatch):
    from node_install_tasks.base_task import BaseTask

    processes = []

    def _create_process(self):
        process = RecordingProcess(self)
        processes.append(process)
        return process

    monkeypatch.setattr(BaseTask, '_create_process', _create_process)
    return processes
