"""Type a shell script into an asciinema recording, character by character."""

from __future__ import annotations

import re
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Sequence, Union

CTRL_PREFIX = "#$"
DEFAULT_DELAY = timedelta(milliseconds=40)
DEFAULT_WAIT = timedelta(milliseconds=100)

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ScriptError(ValueError):
    """Raised when a script or one of its control commands is invalid."""


UNKNOWN_CTRL = "unknown control command"
NO_ARGS = "no arguments given to command"
BAD_ARG = "invalid command argument"


class Command(Protocol):
    def run(self, script: Script) -> None: ...


def _parse_millis(opts: Sequence[str]) -> timedelta:
    if not opts:
        raise ScriptError(NO_ARGS)
    text = opts[0].strip()
    if not _INTEGER.fullmatch(text):
        raise ScriptError(BAD_ARG)
    return timedelta(milliseconds=int(text))


@dataclass(frozen=True)
class Shell:
    """A shell command typed into the recording, always ending in a newline."""

    cmd: str

    def __post_init__(self) -> None:
        if not self.cmd.endswith("\n"):
            object.__setattr__(self, "cmd", self.cmd + "\n")

    def run(self, script: Script) -> None:
        """Type the command one character at a time."""
        if script.stdin is None:
            raise ScriptError("recording has not been started")
        pause = script.delay.total_seconds()
        for char in self.cmd:
            try:
                script.stdin.write(char.encode("utf-8"))
                script.stdin.flush()
            except OSError:
                raise SystemExit(1) from None
            time.sleep(pause)


@dataclass(frozen=True)
class Wait:
    """Changes the pause between subsequent commands."""

    duration: timedelta

    @classmethod
    def parse(cls, opts: Sequence[str]) -> Wait:
        return cls(_parse_millis(opts))

    def run(self, script: Script) -> None:
        script.wait = self.duration


@dataclass(frozen=True)
class Delay:
    """Changes the typing speed of subsequent commands."""

    interval: timedelta

    @classmethod
    def parse(cls, opts: Sequence[str]) -> Delay:
        return cls(_parse_millis(opts))

    def run(self, script: Script) -> None:
        script.delay = self.interval


def parse_ctrl(cmd: str) -> Union[Delay, Wait]:
    """Parse a control command such as ``delay 20`` or ``wait 500``."""
    tokens = cmd.split(" ")
    name = tokens[0].strip()
    if name == "delay":
        return Delay.parse(tokens[1:])
    if name == "wait":
        return Wait.parse(tokens[1:])
    raise ScriptError(UNKNOWN_CTRL)


def _echo(stream: BinaryIO) -> None:
    out = getattr(sys.stdout, "buffer", None)
    while True:
        try:
            chunk = stream.read1(1024) if hasattr(stream, "read1") else stream.read(1024)
        except (OSError, ValueError):
            return
        if not chunk:
            return
        if out is not None:
            out.write(chunk)
            out.flush()
        else:
            sys.stdout.write(chunk.decode("utf-8", errors="replace"))
            sys.stdout.flush()


@dataclass
class Script:
    """A shell script to be run and recorded by asciinema."""

    args: list[str] = field(default_factory=list)
    commands: list[Command] = field(default_factory=list)
    delay: timedelta = DEFAULT_DELAY
    wait: timedelta = DEFAULT_WAIT
    process: Optional[subprocess.Popen] = None
    stdin: Optional[BinaryIO] = None

    @classmethod
    def parse(cls, text: str, args: Sequence[str] = ()) -> Script:
        """Parse script text; lines starting with ``#$`` are control commands."""
        script = cls(args=list(args))
        lines = text.split("\n")
        last = len(lines) - 1
        for number, line in enumerate(lines, start=1):
            if line == "" and number - 1 == last:
                continue
            if line.startswith(CTRL_PREFIX):
                try:
                    ctrl = parse_ctrl(line[len(CTRL_PREFIX):].strip())
                except ScriptError as err:
                    raise ScriptError(f"{err} (line {number})") from None
                script.commands.append(ctrl)
            else:
                script.commands.append(Shell(line))
        return script

    @classmethod
    def from_file(cls, path: Union[str, Path], args: Sequence[str] = ()) -> Script:
        """Read and parse the script file at ``path``."""
        return cls.parse(Path(path).read_text(encoding="utf-8"), args)

    def start(self) -> None:
        """Start recording with ``asciinema rec``."""
        self.process = subprocess.Popen(
            ["asciinema", "rec", *self.args],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        self.stdin = self.process.stdin
        for stream in (self.process.stdout, self.process.stderr):
            threading.Thread(target=_echo, args=(stream,), daemon=True).start()

    def stop(self) -> None:
        """Stop recording, asking the user to confirm saving when needed."""
        if self.stdin is None:
            raise ScriptError("recording has not been started")
        try:
            self.stdin.write(b"\x04")
            self.stdin.flush()
            if not self.args or self.args[0].startswith("-"):
                self._end_dialog()
        finally:
            if self.process is not None:
                self.process.wait()

    def _end_dialog(self) -> None:
        try:
            sys.stdin.readline()
        except KeyboardInterrupt:
            if self.process is not None:
                self.process.send_signal(signal.SIGINT)
            return
        try:
            self.stdin.write(b"\n")
            self.stdin.flush()
        except OSError:
            pass

    def execute(self) -> None:
        """Run each command, pausing between them."""
        for command in self.commands:
            command.run(self)
            time.sleep(self.wait.total_seconds())


def _fatal(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Record a script: ``asciinema-run <script> [asciinema rec args...]``."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    prog = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "asciinema-run"
    if not argv or argv[0] in ("-h", "--help"):
        return _fatal(f"usage: {prog} <script>")

    try:
        found = subprocess.run(
            ["asciinema", "-h"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        ).returncode == 0
    except OSError:
        found = False
    if not found:
        return _fatal("can't find asciinema executable")

    try:
        script = Script.from_file(argv[0], argv[1:])
    except (OSError, ScriptError) as err:
        return _fatal(f"parsing script failed: {err}")

    try:
        script.start()
    except OSError as err:
        return _fatal(f"couldn't start recording: {err}")

    try:
        script.execute()
    finally:
        try:
            script.stop()
        except OSError as err:
            return _fatal(f"couldn't stop recording: {err}")
    return 0