"""
The installation task for Node.js projects.

The main object is `InstallTask`, a `BaseTask` subclass that wipes the
project's ``node_modules`` folder and then runs the selected package
manager client (`NpmClient`) in the project directory, optionally with
the Taobao mirrors injected in its environment.
"""

import configparser
import contextlib
import shutil
from collections.abc import Mapping
from logging import getLogger
from pathlib import Path
from typing import TypedDict

from qtpy.QtCore import QObject, QProcessEnvironment

from node_install_tasks.base_task import BaseTask
from node_install_tasks.enums import (
    NpmClient,
    TaskEventType,
    TaskState,
    TaskType,
)
from node_install_tasks.utils import (
    UnknownClientError,
    client_executable,
    get_npm_client,
    resolve_client,
)

log = getLogger(__name__)

# Base environment accepted by the install task
Environment = QProcessEnvironment | Mapping[str, str]

REGISTRY_URL = 'https://registry.npm.taobao.org'
MIRROR_URL = 'https://npm.taobao.org/mirrors'

# Variables redirecting registry and binary downloads to the mirrors
SPEED_UP_ENV = {
    'NODEJS_ORG_MIRROR': f'{MIRROR_URL}/node',
    'NVM_NODEJS_ORG_MIRROR': f'{MIRROR_URL}/node',
    'NVM_IOJS_ORG_MIRROR': f'{MIRROR_URL}/iojs',
    'PHANTOMJS_CDNURL': f'{MIRROR_URL}/phantomjs',
    'CHROMEDRIVER_CDNURL': 'http://tnpm-hz.oss-cn-hangzhou.aliyuncs.com/dist/chromedriver',
    'OPERADRIVER_CDNURL': f'{MIRROR_URL}/operadriver',
    'ELECTRON_MIRROR': f'{MIRROR_URL}/electron/',
    'SASS_BINARY_SITE': f'{MIRROR_URL}/node-sass',
    'PUPPETEER_DOWNLOAD_HOST': MIRROR_URL,
    'FLOW_BINARY_MIRROR': 'https://github.com/facebook/flow/releases/download/v',
    'npm_config_registry': REGISTRY_URL,
    'yarn_registry': REGISTRY_URL,
}

# Arguments each client needs to install a project
CLIENT_ARGUMENTS: dict[NpmClient, tuple[str, ...]] = {
    NpmClient.TNPM: ('install', '-d'),
    NpmClient.CNPM: ('install', '-d'),
    NpmClient.NPM: ('install', '-d'),
    NpmClient.AYARN: (),
    NpmClient.YARN: (),
    NpmClient.PNPM: (),
}


class InstallOptions(TypedDict, total=False):
    """Run-time options of an install task."""

    NPM_CLIENT: str
    TAOBAO_SPEED_UP: bool


def command_for(client: NpmClient) -> list[str]:
    "Program and arguments that install a project with `client`"
    return [client_executable(client), *CLIENT_ARGUMENTS[client]]


class InstallTask(BaseTask):
    """Install the dependencies of the Node.js project found in `cwd`."""

    def __init__(
        self, cwd: str | Path, parent: QObject | None = None
    ) -> None:
        super().__init__(cwd, TaskType.INSTALL, parent)

    def run(
        self,
        env: InstallOptions | None = None,
        base_environment: Environment | None = None,
    ) -> None:
        """Clean ``node_modules`` and start the installation.

        Returns as soon as the client process is started; its outcome is
        reported through `processFinished` and the task state.

        Parameters
        ----------
        env : InstallOptions, optional
            ``NPM_CLIENT`` selects the client, auto-detected when missing.
            ``TAOBAO_SPEED_UP`` injects the mirror variables.
        base_environment : QProcessEnvironment or Mapping, optional
            Environment the client inherits. The system environment when
            not given. It is copied, never modified.
        """
        env = env or {}
        super().run(env)

        self.emit(TaskEventType.STD_OUT_DATA, 'Cleaning node_modules...\n')
        try:
            self.clean_node_modules()
        except OSError as e:
            self.emit(
                TaskEventType.STD_OUT_DATA, 'Cleaning node_modules error\n'
            )
            self.emit(TaskEventType.STD_OUT_DATA, f'{e}\n')
        else:
            self.emit(
                TaskEventType.STD_OUT_DATA, 'Cleaning node_modules success.\n'
            )

        try:
            command = self.command(env)
        except (UnknownClientError, configparser.Error, OSError) as e:
            self.emit(TaskEventType.STD_ERR_DATA, f'{e}\n')
            self._on_process_done(TaskState.FAIL)
            return

        program, *arguments = command
        self.emit(
            TaskEventType.STD_OUT_DATA, f'Executing {" ".join(command)}... \n'
        )

        process = self._create_process()
        process.setProgram(program)
        process.setArguments(arguments)
        process.setWorkingDirectory(str(self.cwd))
        process.setProcessEnvironment(
            self.environment(env, base_environment)
        )
        self.process = process
        self.handle_child_process(process)

        log.info(
            "Starting '%s' with args %s in %s", program, arguments, self.cwd
        )
        process.start()

    def clean_node_modules(self) -> None:
        """Remove ``<cwd>/node_modules``. A missing folder is not an error.

        A symlinked ``node_modules`` is unlinked, its target is kept.
        """
        path = self.cwd / 'node_modules'
        if path.is_symlink():
            path.unlink()
            return
        with contextlib.suppress(FileNotFoundError):
            shutil.rmtree(path)

    def command(self, env: InstallOptions | None = None) -> list[str]:
        """Program and arguments of the installation.

        Raises
        ------
        UnknownClientError
            If ``NPM_CLIENT`` (or the configured client) is not supported.
        configparser.Error
            If the configuration file cannot be parsed.
        """
        name = (env or {}).get('NPM_CLIENT')
        if name:
            client = resolve_client(name)
        else:
            client = get_npm_client(self.cwd)
        return command_for(client)

    def environment(
        self,
        env: InstallOptions | None = None,
        base_environment: Environment | None = None,
    ) -> QProcessEnvironment:
        "Environment variables handed to the client process."
        if base_environment is None:
            environment = QProcessEnvironment.systemEnvironment()
        elif isinstance(base_environment, Mapping):
            environment = QProcessEnvironment()
            for key, value in base_environment.items():
                environment.insert(key, value)
        else:
            environment = QProcessEnvironment(base_environment)

        for key, value in self.speed_up_environment(env).items():
            environment.insert(key, value)
        return environment

    @staticmethod
    def speed_up_environment(
        env: InstallOptions | None = None,
    ) -> dict[str, str]:
        "Mirror variables to inject, empty unless ``TAOBAO_SPEED_UP`` is set"
        if not (env or {}).get('TAOBAO_SPEED_UP'):
            return {}
        return dict(SPEED_UP_ENV)
