import pytest

from node_install_tasks.enums import NpmClient, TaskState


@pytest.mark.parametrize(
    ('state', 'terminal'),
    [
        (TaskState.INIT, False),
        (TaskState.RUNNING, False),
        (TaskState.FAIL, True),
        (TaskState.SUCCESS, True),
    ],
)
def test_terminal_states(state, terminal):
    assert state.is_terminal is terminal


def test_client_values():
    assert [client.value for client in NpmClient] == [
        'tnpm',
        'cnpm',
        'npm',
        'ayarn',
        'yarn',
        'pnpm',
    ]
