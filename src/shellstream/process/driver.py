"""
Run child processes as producers and consumers of streams.

Each run of a process stream spawns the command afresh. The driver wires the
child to background tasks (stdin feeder, output readers or forwarders) and
always releases every handle and reaps the child before it returns, whether
the output was exhausted, abandoned, or an exception unwound the run.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import IO, Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from shellstream.config import config
from shellstream.errors import ProcessFailed, ShellFailed, SpawnFailed
from shellstream.process.guard import HandleGuard
from shellstream.streams.fold import Fold
from shellstream.streams.merge import Channel, ChannelMerger, OutputLine
from shellstream.streams.stream import Stream, chomp
from shellstream.tasks import BackgroundTask, current_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """
    A command to spawn.

    Either a program with arguments (run through ``execvp``) or a command line
    interpreted by the shell.
    """
    program: str
    arguments: Tuple[str, ...] = ()
    use_shell: bool = False
    cwd: Optional[str] = None
    env: Optional[Mapping[str, str]] = None

    @classmethod
    def proc(cls, program: str, arguments: Sequence[str] = (), **kwargs) -> 'Command':
        return cls(program, tuple(arguments), use_shell=False, **kwargs)

    @classmethod
    def shell(cls, command_line: str, **kwargs) -> 'Command':
        return cls(command_line, (), use_shell=True, **kwargs)

    def popen_args(self) -> Union[str, List[str]]:
        if self.use_shell:
            return self.program
        return [self.program, *self.arguments]

    def failure(self, exit_code: int) -> ProcessFailed:
        """The error reported for a non-zero exit code."""
        if self.use_shell:
            return ShellFailed(self.program, exit_code)
        return ProcessFailed(self.program, self.arguments, exit_code)

    def __str__(self) -> str:
        if self.use_shell:
            return self.program
        return ' '.join([self.program, *self.arguments])


CommandLike = Union[Command, str]


def _as_command(command: CommandLike) -> Command:
    if isinstance(command, Command):
        return command
    return Command.shell(command)


@dataclass
class ProcessHandles:
    """
    The pipes and process reference of one spawned child.

    Owned by the driver until the run that spawned it has finished. stdin is
    guarded because both the feeder task and the cleanup path close it.
    """
    command: Command
    process: subprocess.Popen
    stdin: Optional[HandleGuard] = None
    stdout: Optional[IO[str]] = None
    stderr: Optional[IO[str]] = None
    tasks: List[BackgroundTask] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.process.pid

    def start(self, task: BackgroundTask) -> BackgroundTask:
        """Start a task whose lifetime is bound to this child."""
        self.tasks.append(task)
        return task.start()

    def terminate(self) -> None:
        """Terminate the child if still running and reap it."""
        if self.process.poll() is None:
            logger.debug("Terminating %s (pid %d)", self.command, self.pid)
            self.process.terminate()
            try:
                self.process.wait(timeout=config.terminate_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("%s (pid %d) ignored terminate, killing it",
                               self.command, self.pid)
                self.process.kill()
        self.process.wait()

    def shutdown(self, feeder: Optional[BackgroundTask] = None) -> None:
        """
        Release everything, unconditionally.

        Cancel and await the feeder, close stdin, terminate the child if it is
        still alive, wait for it, then join the remaining tasks and close the
        output pipes.
        """
        for task in self.tasks:
            task.cancel()

        if feeder is not None and not feeder.join(config.cancel_grace):
            # A feeder blocked on a full pipe only wakes up once the child is gone
            self.terminate()
            feeder.join()

        if self.stdin is not None:
            self.stdin.close_once()
        self.terminate()

        for task in self.tasks:
            task.join()

        for pipe in (self.stdout, self.stderr):
            if pipe is not None:
                pipe.close()


def spawn(command: CommandLike, stdin: bool = True, stdout: bool = True,
          stderr: bool = False) -> ProcessHandles:
    """
    Spawn ``command`` with the requested pipes.

    Pipes that are not requested are inherited from the current process. A
    failure to start the child raises SpawnFailed before anything else runs.
    """
    command = _as_command(command)
    env = command.env if command.env is not None else config.environment
    try:
        process = subprocess.Popen(
            command.popen_args(),
            shell=command.use_shell,
            cwd=command.cwd,
            env=env,
            stdin=subprocess.PIPE if stdin else None,
            stdout=subprocess.PIPE if stdout else None,
            stderr=subprocess.PIPE if stderr else None,
            **config.popen_text_options()
        )
    except OSError as e:
        raise SpawnFailed(command.program, command.arguments, str(e)) from e

    logger.debug("Spawned %s (pid %d)", command, process.pid)
    return ProcessHandles(
        command=command,
        process=process,
        stdin=HandleGuard(process.stdin, name=f"stdin of {command}") if stdin else None,
        stdout=process.stdout,
        stderr=process.stderr,
    )


def _feeder(handles: ProcessHandles, lines: Stream[str]):
    guard = handles.stdin

    def feed(task: BackgroundTask) -> None:
        def write(_, line):
            task.check()
            guard.handle.write(line + '\n')

        try:
            lines.fold(Fold(write, lambda: None))
        except BrokenPipeError:
            # The child stopped reading its input
            logger.debug("%s closed its stdin early", handles.command)
        finally:
            guard.close_once()
    return feed


def _start_feeder(handles: ProcessHandles, lines: Optional[Stream[str]]) -> BackgroundTask:
    lines = lines if lines is not None else Stream.empty()
    return handles.start(BackgroundTask(_feeder(handles, lines), name=f"feed-{handles.pid}"))


def _read_all(pipe: IO[str]):
    def read(task: BackgroundTask) -> str:
        return pipe.read()
    return read


class _TaskBinding:
    """
    Ties a child to the background task running its stream, if any.

    A stream run by a feeder or a paste producer may be blocked reading its
    child when the task is cancelled; cancelling terminates the child, which
    ends the read.
    """

    def __init__(self, handles: ProcessHandles):
        self.task = current_task()
        self._terminate = handles.terminate
        if self.task is not None:
            self.task.on_cancel(self._terminate)

    def check(self) -> None:
        if self.task is not None:
            self.task.check()

    def release(self) -> None:
        if self.task is not None:
            self.task.remove_cancel_callback(self._terminate)


def _settle(command: Command, exit_code: int, *finishers: Callable[[], Any]) -> None:
    """
    Collect the outcome of the helper tasks, then report a non-zero exit.

    A task error that accompanies a failed exit becomes the cause of the
    ProcessFailed.
    """
    try:
        for finish in finishers:
            finish()
    except Exception as e:
        if exit_code != 0:
            raise command.failure(exit_code) from e
        raise
    if exit_code != 0:
        raise command.failure(exit_code)


def stream(command: CommandLike, lines: Optional[Stream[str]] = None) -> Stream[str]:
    """
    Stream the stdout of ``command`` as lines, feeding it ``lines`` on stdin.

    stderr is inherited. A non-zero exit raises ProcessFailed once every line
    of output has been delivered.
    """
    command = _as_command(command)

    def run(consumer):
        handles = spawn(command, stderr=False)
        owner = _TaskBinding(handles)
        feeder = _start_feeder(handles, lines)
        try:
            x = consumer.begin()
            while True:
                line = handles.stdout.readline()
                if not line:
                    break
                x = consumer.step(x, chomp(line))

            owner.check()
            exit_code = handles.process.wait()
            _settle(command, exit_code, feeder.halt)
        finally:
            owner.release()
            handles.shutdown(feeder)
        return consumer.done(x)

    return Stream(run)


def stream_with_err(command: CommandLike,
                    lines: Optional[Stream[str]] = None) -> Stream[OutputLine]:
    """
    Stream stdout and stderr of ``command``, merged in arrival order.

    Lines are OutputLine values tagged with their channel. Lines of one
    channel keep their order; lines of different channels interleave as they
    arrive.
    """
    command = _as_command(command)

    def run(consumer):
        handles = spawn(command, stderr=True)
        owner = _TaskBinding(handles)
        feeder = _start_feeder(handles, lines)
        merger = ChannelMerger([
            (Channel.STDOUT, handles.stdout),
            (Channel.STDERR, handles.stderr),
        ])
        for task in merger.tasks:
            handles.start(task)
        try:
            x = merger.drain(consumer.step, consumer.begin())

            owner.check()
            exit_code = handles.process.wait()
            _settle(command, exit_code, feeder.halt, merger.wait_all)
        finally:
            owner.release()
            handles.shutdown(feeder)
        return consumer.done(x)

    return Stream(run)


def system(command: CommandLike, lines: Optional[Stream[str]] = None) -> int:
    """
    Run ``command``, feeding it ``lines``, and return its exit code.

    stdout and stderr are inherited from the current process.
    """
    handles = spawn(command, stdout=False, stderr=False)
    feeder = _start_feeder(handles, lines)
    try:
        exit_code = handles.process.wait()
        feeder.halt()
    finally:
        handles.shutdown(feeder)
    return exit_code


def system_strict(command: CommandLike,
                  lines: Optional[Stream[str]] = None) -> Tuple[int, str]:
    """
    Run ``command`` and capture its whole stdout.

    The output is read by its own task while the feeder writes and the driver
    waits for the exit; all of them are joined before returning.
    """
    handles = spawn(command, stderr=False)
    feeder = _start_feeder(handles, lines)
    reader = handles.start(BackgroundTask(_read_all(handles.stdout), name=f"read-{handles.pid}"))
    try:
        exit_code = handles.process.wait()
        feeder.halt()
        out = reader.result()
    finally:
        handles.shutdown(feeder)
    return exit_code, out


def system_strict_with_err(command: CommandLike,
                           lines: Optional[Stream[str]] = None) -> Tuple[int, str, str]:
    """Run ``command`` and capture its whole stdout and stderr."""
    handles = spawn(command, stderr=True)
    feeder = _start_feeder(handles, lines)
    out_reader = handles.start(BackgroundTask(_read_all(handles.stdout), name=f"read-out-{handles.pid}"))
    err_reader = handles.start(BackgroundTask(_read_all(handles.stderr), name=f"read-err-{handles.pid}"))
    try:
        exit_code = handles.process.wait()
        feeder.halt()
        out = out_reader.result()
        err = err_reader.result()
    finally:
        handles.shutdown(feeder)
    return exit_code, out, err
