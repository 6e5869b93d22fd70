import configparser
from pathlib import Path

DEFAULT_CONFIG_PATH = Path.home() / '.node-install-tasks'
DEFAULT_CONFIG_FILE_PATH = DEFAULT_CONFIG_PATH / 'node-install-tasks.ini'


def get_configuration():
    """
    Get the install tasks configuration.

    Currently only used to pin the package manager client used when the
    task options do not name one:
        * `['install']['npm_client']` -> str, empty means auto-detect
    """
    DEFAULT_CONFIG_PATH.mkdir(exist_ok=True)
    config = configparser.ConfigParser()

    if DEFAULT_CONFIG_FILE_PATH.exists():
        config.read(DEFAULT_CONFIG_FILE_PATH)

    if not config.has_section('install'):
        # Set default config
        config['install'] = {'npm_client': ''}

        # Write the configuration to a file
        with open(DEFAULT_CONFIG_FILE_PATH, 'w') as configfile:
            config.write(configfile)

    return config
