"""Patch engine backed by an external command speaking JSON lines."""

from __future__ import annotations

import os
import signal
import subprocess
import tempfile
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import IO, TYPE_CHECKING

from pydantic import ValidationError

from patchrun.domain.errors import EngineError
from patchrun.domain.types import PackageIdentity, PatcherResult, PatchError, PatchOutcome

from .schema import (
    ENGINE_EVENT,
    ApplyRequest,
    FatalEvent,
    OutcomeEvent,
    PackagePayload,
    PatchRequest,
    ResultEvent,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from types import TracebackType

    from patchrun.domain.ports.engine import EngineSession, OutcomeStream, PatchEngine
    from patchrun.domain.types import OptionValues, Patch

log = getLogger(__name__)


def _read_stderr(handle: IO[bytes]) -> str:
    handle.seek(0)
    return handle.read().decode("utf-8", errors="replace").strip()


def _to_outcome(event: OutcomeEvent) -> PatchOutcome:
    error = None
    if event.error is not None:
        error = PatchError(message=event.error.message or "Unknown error", trace=event.error.trace)
    elapsed = None if event.elapsed_ms is None else event.elapsed_ms / 1000.0
    return PatchOutcome(patch=event.patch, error=error, elapsed=elapsed)


def _parse_event(line: str) -> OutcomeEvent | ResultEvent | FatalEvent:
    try:
        return ENGINE_EVENT.validate_json(line)
    except ValidationError as exc:
        raise EngineError(f"Engine emitted an unreadable event: {line!r}") from exc


@dataclass(slots=True)
class CommandOutcomeStream:
    """Outcomes read line by line from a running ``apply`` process."""

    process: subprocess.Popen[bytes]
    stderr: IO[bytes]
    result: PatcherResult | None = None
    finished: bool = False

    def __iter__(self) -> Iterator[PatchOutcome]:
        return self

    def __next__(self) -> PatchOutcome:
        if self.finished:
            raise StopIteration
        stdout = self.process.stdout
        if stdout is None:
            raise EngineError("Engine process has no output stream")
        for raw in stdout:
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            event = _parse_event(line)
            if isinstance(event, OutcomeEvent):
                return _to_outcome(event)
            if isinstance(event, ResultEvent):
                self.result = PatcherResult(
                    overlay_dir=Path(event.overlay_dir),
                    deleted_entries=frozenset(event.deleted_entries),
                )
                continue
            self._stop()
            raise EngineError(event.message)
        self._wait()
        raise StopIteration

    def _wait(self) -> None:
        self.finished = True
        returncode = self.process.wait()
        if returncode != 0:
            detail = _read_stderr(self.stderr)
            raise EngineError(f"Engine exited with status {returncode}: {detail}".rstrip(": "))

    def _stop(self) -> None:
        self.finished = True
        if self.process.poll() is None:
            self.process.terminate()
        self.process.wait()

    def cancel(self) -> list[PatchOutcome]:
        """Interrupt the engine and collect the outcomes it had already written."""

        if self.finished:
            return []
        self.finished = True
        if self.process.poll() is None:
            if os.name == "nt":
                self.process.terminate()
            else:
                self.process.send_signal(signal.SIGINT)
        remaining: list[PatchOutcome] = []
        stdout = self.process.stdout
        if stdout is not None:
            for raw in stdout:
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    event = ENGINE_EVENT.validate_json(line)
                except ValidationError:
                    log.debug("Dropping partial engine line after cancel: %r", line)
                    continue
                if isinstance(event, OutcomeEvent):
                    remaining.append(_to_outcome(event))
        self.process.wait()
        return remaining


@dataclass(slots=True)
class CommandEngineSession:
    command: tuple[str, ...]
    artifact: Path
    work_dir: Path
    package: PackageIdentity
    aapt2_binary: Path | None = None
    _stream: CommandOutcomeStream | None = field(default=None, init=False)
    _stderr: IO[bytes] | None = field(default=None, init=False)

    def apply(
        self,
        patches: Sequence[Patch],
        options: Mapping[str, OptionValues],
    ) -> CommandOutcomeStream:
        if self._stream is not None:
            raise EngineError("Engine session already applied its patches")
        request = ApplyRequest(
            patches=[
                PatchRequest(name=patch.name, options=dict(options.get(patch.name, {})))
                for patch in patches
            ]
        )
        self._stderr = tempfile.TemporaryFile()  # noqa: SIM115
        try:
            process = subprocess.Popen(  # noqa: S603
                self._apply_command(),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=self._stderr,
            )
        except OSError as exc:
            raise EngineError(f"Cannot start engine: {exc}") from exc
        if process.stdin is not None:
            try:
                process.stdin.write(request.model_dump_json(by_alias=True).encode("utf-8"))
                process.stdin.close()
            except BrokenPipeError:
                # the engine exited early; its status is reported by the stream
                log.debug("Engine closed its input before reading the request")
        self._stream = CommandOutcomeStream(process=process, stderr=self._stderr)
        return self._stream

    def _apply_command(self) -> list[str]:
        command = [*self.command, "apply", str(self.artifact), "--work-dir", str(self.work_dir)]
        if self.aapt2_binary is not None:
            command += ["--aapt2-binary", str(self.aapt2_binary)]
        return command

    def result(self) -> PatcherResult:
        if self._stream is None or not self._stream.finished:
            raise EngineError("Engine result requested before all outcomes were consumed")
        if self._stream.result is None:
            raise EngineError("Engine finished without reporting a result")
        return self._stream.result

    def __enter__(self) -> CommandEngineSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._stream is not None and self._stream.process.poll() is None:
            log.debug("Stopping engine process")
            self._stream.process.terminate()
            self._stream.process.wait()
        if self._stream is not None and self._stream.process.stdout is not None:
            self._stream.process.stdout.close()
        if self._stderr is not None:
            self._stderr.close()


@dataclass(frozen=True, slots=True)
class CommandPatchEngine:
    command: tuple[str, ...]

    def open(
        self,
        artifact: Path,
        work_dir: Path,
        *,
        aapt2_binary: Path | None = None,
    ) -> CommandEngineSession:
        work_dir.mkdir(parents=True, exist_ok=True)
        try:
            completed = subprocess.run(  # noqa: S603
                [*self.command, "inspect", str(artifact)],
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise EngineError(f"Cannot start engine: {exc}") from exc
        if completed.returncode != 0:
            detail = completed.stderr.decode("utf-8", errors="replace").strip()
            raise EngineError(
                f"Engine cannot open {artifact.name}: {detail or completed.returncode}"
            )
        try:
            payload = PackagePayload.model_validate_json(completed.stdout)
        except ValidationError as exc:
            raise EngineError(
                f"Engine returned unreadable package metadata for {artifact.name}"
            ) from exc
        package = PackageIdentity(name=payload.package_name, version=payload.package_version)
        log.debug("Engine opened %s as %s", artifact, package)
        return CommandEngineSession(
            command=self.command,
            artifact=artifact,
            work_dir=work_dir,
            package=package,
            aapt2_binary=aapt2_binary,
        )


if TYPE_CHECKING:
    _engine_check: PatchEngine = CommandPatchEngine(command=("engine",))
    _session_check: EngineSession = CommandEngineSession(
        command=("engine",),
        artifact=Path("app.apk"),
        work_dir=Path("work"),
        package=PackageIdentity("app", "1"),
    )
    _stream_check: OutcomeStream = _session_check.apply((), {})
