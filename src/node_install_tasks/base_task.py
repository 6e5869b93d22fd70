"""Process supervision logic shared by every task kind.

The main object is `BaseTask`, a `QObject` subclass that owns at most
one `QProcess` at a time and reports everything it does through the
`taskEvent` signal.

Concrete task kinds (e.g. `InstallTask`) call `BaseTask.run` first,
do their own startup work and finally attach the process they start
with `handle_child_process`. The exit of that process is the only
thing that moves the task into a terminal state.
"""

import codecs
import contextlib
import os
import signal
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import Any, TypedDict

from qtpy.QtCore import QObject, QProcess, Signal

from node_install_tasks.enums import TaskEventType, TaskState, TaskType

log = getLogger(__name__)

# Event types whose payloads are kept in the task log
_OUTPUT_EVENTS = (TaskEventType.STD_OUT_DATA, TaskEventType.STD_ERR_DATA)


@dataclass(frozen=True)
class TaskEvent:
    """An event emitted on a task's event channel."""

    type: TaskEventType
    payload: str


class TaskFinishedData(TypedDict):
    """Data about a finished task process."""

    exit_code: int | None
    exit_status: int | None
    state: TaskState


class TaskDetail(TypedDict):
    """Snapshot of a task, as reported to the task registry."""

    key: str
    type: TaskType
    state: TaskState
    cwd: str
    log: list[str]


class BaseTask(QObject):
    """A unit of supervised asynchronous work.

    Parameters
    ----------
    cwd : str or Path
        Working directory of the external command.
    task_type : TaskType
        Kind of task.
    parent : QObject, optional
        Qt parent of the task.
    """

    # emitted for every event, in order
    # TaskEvent
    taskEvent = Signal(object)

    # emitted when the state changes
    # TaskState
    stateChanged = Signal(object)

    # emitted once the child process is done, either because it exited
    # or because it could not be started
    # dict: TaskFinishedData
    processFinished = Signal(dict)

    # emitted when the child process starts
    started = Signal()

    def __init__(
        self,
        cwd: str | Path,
        task_type: TaskType,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.cwd = Path(cwd)
        self.type = task_type
        self.process: QProcess | None = None
        self.log: list[str] = []
        self._state = TaskState.INIT
        self._cancelled = False
        self._decoders: dict[TaskEventType, codecs.IncrementalDecoder] = {}

    # -------------------------- Public API ------------------------------
    @property
    def key(self) -> str:
        return f'{self.type}:{self.cwd}'

    @property
    def state(self) -> TaskState:
        return self._state

    @state.setter
    def state(self, state: TaskState) -> None:
        if state == self._state:
            return
        self._state = state
        self.emit(TaskEventType.STATE_EVENT, state.value)
        self.stateChanged.emit(state)

    def run(self, env: dict[str, Any] | None = None) -> None:
        """Reset the task bookkeeping and mark it as running.

        Subclasses must call this before starting any work.
        """
        if self.process is not None:
            raise RuntimeError(f'Task {self.key} is already running')
        self.log = []
        self._cancelled = False
        self.state = TaskState.RUNNING

    def cancel(self) -> None:
        """Ask the child process to stop.

        This is a no-op when no process was started or when the task
        already finished. Otherwise the state goes back to `INIT` and
        the process is interrupted. The process may ignore the request;
        its exit (if any) is reported through `processFinished`.
        """
        process = self.process
        if process is None:
            return

        # child process already finished, or already interrupted
        if self.state.is_terminal or self._cancelled:
            return

        self._cancelled = True
        self.state = TaskState.INIT
        self._interrupt_process(process)

    def emit(self, event_type: TaskEventType, payload: str) -> None:
        """Dispatch an event to every subscriber of `taskEvent`."""
        event = TaskEvent(TaskEventType(event_type), payload)
        if event.type in _OUTPUT_EVENTS:
            self.log.append(payload)
        log.debug('[%s] %s: %s', self.key, event.type, payload.rstrip('\n'))
        self.taskEvent.emit(event)

    def handle_child_process(self, process: QProcess) -> None:
        """Turn the output and exit of `process` into task events."""
        self._decoders = {
            event_type: codecs.getincrementaldecoder('utf-8')(errors='replace')
            for event_type in _OUTPUT_EVENTS
        }
        process.readyReadStandardOutput.connect(self._on_stdout_ready)
        process.readyReadStandardError.connect(self._on_stderr_ready)
        process.started.connect(self.started)
        process.finished.connect(self._on_process_finished)
        process.errorOccurred.connect(self._on_error_occurred)

    def detail(self) -> TaskDetail:
        return {
            'key': self.key,
            'type': self.type,
            'state': self.state,
            'cwd': str(self.cwd),
            'log': list(self.log),
        }

    def waitForFinished(self, msecs: int = 30000) -> bool:
        """Block until the child process exits.

        Parameters
        ----------
        msecs : int, optional
            Time to wait, by default 30000
        """
        if self.process is None:
            return True
        return self.process.waitForFinished(msecs)

    # -------------------------- Private methods ------------------------------
    def _create_process(self) -> QProcess:
        return QProcess(self)

    def _interrupt_process(self, process: QProcess) -> None:
        if os.name == 'nt':
            # there is no SIGINT for console-less children on Windows
            process.kill()
            return

        pid = process.processId()
        if pid:
            log.info('Sending SIGINT to %s (pid %s)', self.key, pid)
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, signal.SIGINT)

    def _read_output(self, event_type: TaskEventType, data: bytes) -> None:
        decoder = self._decoders.get(event_type)
        if decoder is None:
            return
        text = decoder.decode(data)
        if text:
            self.emit(event_type, text)

    def _flush_output(self) -> None:
        if self.process is not None:
            self._on_stdout_ready()
            self._on_stderr_ready()
        for event_type, decoder in self._decoders.items():
            text = decoder.decode(b'', final=True)
            if text:
                self.emit(event_type, text)
        self._decoders = {}

    def _on_stdout_ready(self) -> None:
        if self.process is not None:
            data = self.process.readAllStandardOutput().data()
            self._read_output(TaskEventType.STD_OUT_DATA, data)

    def _on_stderr_ready(self) -> None:
        if self.process is not None:
            data = self.process.readAllStandardError().data()
            self._read_output(TaskEventType.STD_ERR_DATA, data)

    def _on_process_finished(
        self, exit_code: int, exit_status: QProcess.ExitStatus
    ) -> None:
        self._flush_output()
        if exit_status == QProcess.ExitStatus.NormalExit and exit_code == 0:
            state = TaskState.SUCCESS
        elif self._cancelled:
            state = TaskState.INIT
        else:
            state = TaskState.FAIL
        self._on_process_done(
            state, exit_code=exit_code, exit_status=exit_status
        )

    def _on_error_occurred(self, error: QProcess.ProcessError) -> None:
        if error != QProcess.ProcessError.FailedToStart:
            # `finished` follows and settles the state
            log.warning('Task %s process error: %s', self.key, error)
            return

        reason = self.process.errorString() if self.process else error
        self.emit(
            TaskEventType.STD_ERR_DATA,
            f'Task failed to start! Error: {reason}.\n',
        )
        self._on_process_done(TaskState.FAIL)

    def _on_process_done(
        self,
        state: TaskState,
        exit_code: int | None = None,
        exit_status: QProcess.ExitStatus | None = None,
    ) -> None:
        self.process = None
        self._decoders = {}
        log.debug(
            'Task %s finished with exit code %s with status %s.',
            self.key,
            exit_code,
            exit_status,
        )
        self.state = state
        self.processFinished.emit(
            {
                'exit_code': exit_code,
                'exit_status': exit_status,
                'state': state,
            }
        )
