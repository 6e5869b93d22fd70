from node_install_tasks.base_task import BaseTask, TaskEvent
from node_install_tasks.enums import (
    NpmClient,
    TaskEventType,
    TaskState,
    TaskType,
)
from node_install_tasks.install_task import InstallTask
from node_install_tasks.utils import UnknownClientError

__version__ = '0.1.0'

__all__ = [
    'BaseTask',
    'InstallTask',
    'NpmClient',
    'TaskEvent',
    'TaskEventType',
    'TaskState',
    'TaskType',
    'UnknownClientError',
]
