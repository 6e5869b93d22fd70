from node_install_tasks import config


def test_config_file(_tmp_configuration):
    config_file = config.DEFAULT_CONFIG_FILE_PATH

    assert not _tmp_configuration.exists()
    assert not config_file.exists()

    initial_config = config.get_configuration()
    assert _tmp_configuration.exists()
    assert config_file.exists()
    assert initial_config.get('install', 'npm_client') == ''

    initial_config.set('install', 'npm_client', 'pnpm')
    with open(config_file, 'w') as configfile:
        initial_config.write(configfile)

    second_config = config.get_configuration()
    assert second_config.get('install', 'npm_client') == 'pnpm'


def test_config_file_without_install_section(_tmp_configuration):
    _tmp_configuration.mkdir()
    config.DEFAULT_CONFIG_FILE_PATH.write_text('[other]\nkey = value\n')

    configuration = config.get_configuration()
    assert configuration.get('install', 'npm_client') == ''
    assert configuration.get('other', 'key') == 'value'
