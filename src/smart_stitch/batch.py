"""
Run a whole stitch job: one folder or a batch of subfolders.

Why this module exists:
- Folders run strictly one after another; the first fatal error stops the
  batch (folders already finished keep their pages).
- The optional post-process command runs after each folder. Its failures are
  reported but never stop the batch.
- StitchJob moves the work onto a worker thread so a shell stays responsive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import queue
import subprocess
import threading
import time
from typing import Iterator, List, Optional

from . import __version__
from .discovery import discover_folders
from .events import EventEmitter, NullEmitter, QueueEmitter, StitchEvent
from .manifest import ManifestRecorder
from .settings import StitchSettings
from .stitch import stitch_folder
from .utils import UserError, normalize_path, split_args


OUTPUT_PLACEHOLDER = "{output}"


@dataclass
class StitchResult:
    outputs: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    elapsed: float = 0.0


def build_post_process_args(template: str, output_folder: Path) -> List[str]:
    """Tokenize template and substitute {output} in every token."""

    output_text = str(output_folder)
    return [token.replace(OUTPUT_PLACEHOLDER, output_text) for token in split_args(template)]


def run_post_process(
    settings: StitchSettings,
    output_folder: Path,
    events: EventEmitter,
    recorder: ManifestRecorder,
) -> Optional[str]:
    """
    Run the configured command for output_folder and wait for it.

    Returns a warning message on failure, None on success.
    """

    args = build_post_process_args(settings.post_process_args, output_folder)
    argv = [settings.post_process_path, *args]
    events.status("Running Post Process...")
    recorder.log(f"Post process: {subprocess.list2cmdline(argv)}", level="debug")

    try:
        completed = subprocess.run(argv, capture_output=True, text=True, check=False)
    except OSError as exc:
        message = f"Could not run script: {exc}"
        events.status(message)
        recorder.log(message, level="warning")
        recorder.add_action(action="post_process", status="failed", command=argv, error=str(exc))
        return message

    if completed.returncode != 0:
        stderr_text = (completed.stderr or "").strip()
        message = f"Post Process Failed: {stderr_text}"
        events.status(message)
        recorder.log(message, level="warning")
        recorder.add_action(
            action="post_process",
            status="failed",
            command=argv,
            returncode=completed.returncode,
        )
        return message

    events.status("Post Process finished.")
    recorder.add_action(action="post_process", status="ok", command=argv)
    return None


def run_stitch(
    settings: StitchSettings,
    events: Optional[EventEmitter] = None,
    recorder: Optional[ManifestRecorder] = None,
) -> StitchResult:
    """
    Process every folder the settings select and return what was produced.

    Raises UserError (EnumerationError, DecodeError, StitchIOError, ...) on the
    first fatal failure; nothing after it is attempted.
    """

    events = events or NullEmitter()
    if recorder is None:
        recorder = ManifestRecorder(tool_name="smart-stitch", tool_version=__version__)

    started = time.perf_counter()
    result = StitchResult()
    root = normalize_path(settings.input_path)
    try:
        folders = discover_folders(root, settings.batch_mode)
    except UserError as exc:
        events.status(f"Error in {root}: {exc}")
        recorder.log(str(exc), level="error")
        raise
    total = len(folders)
    recorder.inputs["folders"] = [str(folder) for folder in folders]
    recorder.log(f"Found {total} folder(s) to stitch under {root}.", level="debug")

    for index, folder in enumerate(folders):
        try:
            output_folder = stitch_folder(
                input_folder=folder,
                settings=settings,
                events=events,
                recorder=recorder,
                folder_index=index,
                folder_total=total,
            )
        except Exception as exc:
            if isinstance(exc, UserError):
                error = exc
            else:
                error = UserError(f"Failed to stitch {folder}: {exc}")
            events.status(f"Error in {folder}: {error}")
            recorder.log(str(error), level="error")
            recorder.add_action(
                action="stitch_folder", status="error", input=str(folder), error=str(error)
            )
            if error is exc:
                raise
            raise error from exc

        if output_folder is None:
            result.skipped.append(folder)
            continue
        result.outputs.append(output_folder)

        if settings.enable_post_process and settings.post_process_path:
            warning = run_post_process(settings, output_folder, events, recorder)
            if warning is not None:
                result.warnings.append(warning)

    result.elapsed = time.perf_counter() - started
    events.status(f"Done in {result.elapsed:.2f}s")
    events.progress(100.0)
    recorder.outputs["folders"] = [str(path) for path in result.outputs]
    return result


class StitchJob:
    """
    Run run_stitch on a dedicated worker thread.

    The worker only queues events; the thread that owns the shell drains them
    with events() and then calls wait() for the result. There is no way to
    cancel a job once it started.
    """

    def __init__(
        self,
        settings: StitchSettings,
        recorder: Optional[ManifestRecorder] = None,
    ) -> None:
        self.settings = settings
        self.recorder = recorder
        self._queue: "queue.Queue[Optional[StitchEvent]]" = queue.Queue()
        self._result: Optional[StitchResult] = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="smart-stitch-worker", daemon=True)

    def start(self) -> "StitchJob":
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            self._result = run_stitch(self.settings, QueueEmitter(self._queue), self.recorder)
        except BaseException as exc:  # handed to wait() on the caller's thread
            self._error = exc
        finally:
            self._queue.put(None)

    def events(self) -> Iterator[StitchEvent]:
        """Yield queued events until the worker finishes."""

        while True:
            event = self._queue.get()
            if event is None:
                return
            yield event

    def wait(self) -> StitchResult:
        """Block until the worker is done; re-raise its failure if any."""

        self._thread.join()
        if self._error is not None:
            if isinstance(self._error, UserError):
                raise self._error
            raise UserError(f"Stitch worker failed: {self._error}") from self._error
        if self._result is None:
            raise UserError("Stitch worker finished without a result.")
        return self._result
