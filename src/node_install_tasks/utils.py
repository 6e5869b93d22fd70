import os
from pathlib import Path
from subprocess import TimeoutExpired, run

from node_install_tasks.config import get_configuration
from node_install_tasks.enums import NpmClient

# Lock files left behind by each client, checked in order
LOCK_FILES = (
    ('pnpm-lock.yaml', NpmClient.PNPM),
    ('yarn.lock', NpmClient.YARN),
    ('package-lock.json', NpmClient.NPM),
)

# Seconds a client may take to report its version
VERSION_TIMEOUT = 10

# Clients preferred over plain npm when they are installed
PREFERRED_CLIENTS = (
    NpmClient.TNPM,
    NpmClient.CNPM,
    NpmClient.PNPM,
    NpmClient.YARN,
)


class UnknownClientError(ValueError):
    """The name does not match any supported package manager client."""


def resolve_client(name: str | NpmClient) -> NpmClient:
    """Map a client name (e.g. ``'yarn'``) to its `NpmClient`.

    Raises
    ------
    UnknownClientError
        If `name` is not a supported client.
    """
    try:
        return NpmClient(name)
    except ValueError:
        raise UnknownClientError(f'NpmClient {name} not recognized!') from None


def client_executable(client: NpmClient) -> str:
    "Name of the program that runs `client`"
    # npm and friends ship as batch wrappers on Windows
    cmd = '.cmd' if os.name == 'nt' else ''
    return f'{client.value}{cmd}'


def client_available(client: NpmClient) -> bool:
    """Check if the client is available by asking for its version."""
    try:
        process = run(
            [client_executable(client), '--version'],
            capture_output=True,
            timeout=VERSION_TIMEOUT,
        )
    except (FileNotFoundError, TimeoutExpired):
        return False
    else:
        return process.returncode == 0


def lock_file_client(cwd: str | Path) -> NpmClient | None:
    """Client whose lock file is present in `cwd`, if any."""
    for name, client in LOCK_FILES:
        if (Path(cwd) / name).is_file():
            return client
    return None


def get_npm_client(cwd: str | Path) -> NpmClient:
    """Pick the client for a project that did not ask for one.

    The configured ``npm_client`` wins, then the project's lock file,
    then the first installed client of `PREFERRED_CLIENTS`. Falls back
    to npm.
    """
    configured = get_configuration().get(
        'install', 'npm_client', fallback=''
    )
    if configured:
        return resolve_client(configured.strip())

    client = lock_file_client(cwd)
    if client is not None:
        return client

    for client in PREFERRED_CLIENTS:
        if client_available(client):
            return client
    return NpmClient.NPM
