"""Enumerations shared by every task kind."""

from enum import StrEnum, auto


class TaskState(StrEnum):
    "Lifecycle states of a task"

    INIT = auto()
    RUNNING = auto()
    FAIL = auto()
    SUCCESS = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.FAIL, TaskState.SUCCESS)


class TaskType(StrEnum):
    "Task kinds known to the task registry"

    INSTALL = auto()


class TaskEventType(StrEnum):
    "Kinds of events emitted on a task's event channel"

    STD_OUT_DATA = auto()
    STD_ERR_DATA = auto()
    STATE_EVENT = auto()


class NpmClient(StrEnum):
    "Package manager clients that can run an installation"

    TNPM = auto()
    CNPM = auto()
    NPM = auto()
    AYARN = auto()
    YARN = auto()
    PNPM = auto()
