"""
Batch Translation
=================

Translates many classdef files on a bounded pool of worker threads.

    result = translate_batch(["a/A.m", "b/B.m"], config, output_dir="out")
    for line in result.report():
        print(line)

Guarantees
----------
- Each file is translated by its own scanner, parser and emitter; workers
  share nothing but the read-only configuration.
- Results and the aggregated diagnostic stream are in submission order,
  regardless of the order in which workers finish.
- A failing file is reported and does not stop the batch.
- Once `cancel_event` is set, files that have not started are reported as
  cancelled; files already being translated finish normally.
- Output files are written to a temporary file in the target directory
  and moved into place, so a file is either complete or absent.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional
import logging
import os
import tempfile
import threading

from mtocpy.errors import MtocError
from mtocpy.classdef.config import TranslatorConfig
from mtocpy.classdef.errors import ClassdefError, Diagnostic, Severity
from mtocpy.classdef.translator import ClassdefTranslator

logger = logging.getLogger(__name__)


class FileStatus(Enum):
    """Outcome of one file in a batch."""
    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class FileResult:
    """
    Outcome of translating one file.

    Attributes:
        path: Source path
        status: OK, FAILED or CANCELLED
        output: Generated pseudo-code (OK only)
        output_path: Where the output was written, if an output directory
            was given
        diagnostics: Non-fatal findings for this file
        error: The exception that stopped translation (FAILED only)
    """
    path: Path
    status: FileStatus
    output: str = ""
    output_path: Optional[Path] = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == FileStatus.OK

    def error_line(self) -> str:
        """Return the 'path:line:column: error: message' line for a failure."""
        if isinstance(self.error, ClassdefError):
            return str(self.error).splitlines()[0]
        return f"{self.path}: error: {self.error}"


@dataclass
class BatchResult:
    """Per-file results of a batch, in submission order."""
    files: list[FileResult] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """All non-fatal diagnostics, file by file in submission order."""
        return [d for f in self.files for d in f.diagnostics]

    @property
    def succeeded(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.OK)

    @property
    def failed(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.CANCELLED)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.cancelled == 0

    def report(self, include_info: bool = True) -> list[str]:
        """
        The ordered diagnostic stream: findings and errors per file.

        With `include_info` unset, informational findings are left out.
        """
        lines = []
        for result in self.files:
            lines.extend(
                str(d) for d in result.diagnostics
                if include_info or d.severity == Severity.WARNING
            )
            if result.status == FileStatus.FAILED:
                lines.append(result.error_line())
            elif result.status == FileStatus.CANCELLED:
                lines.append(f"{result.path}: cancelled")
        return lines


# =============================================================================
# Output
# =============================================================================

def write_output_atomic(path: Path, text: str) -> None:
    """Write `text` to `path` through a temporary file and os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def plan_output_paths(paths: list[Path], output_dir: Path, suffix: str) -> list[Path]:
    """
    Map source files to output files in `output_dir`.

    'A.m' becomes 'A.cc'; a repeated stem gets a numeric suffix ('A_2.cc')
    in submission order.
    """
    taken: dict[str, int] = {}
    planned = []
    for path in paths:
        count = taken.get(path.stem, 0) + 1
        taken[path.stem] = count
        stem = path.stem if count == 1 else f"{path.stem}_{count}"
        planned.append(output_dir / f"{stem}{suffix}")
    return planned


# =============================================================================
# Batch Driver
# =============================================================================

def translate_batch(
    paths: Iterable[Path | str],
    config: Optional[TranslatorConfig] = None,
    output_dir: Optional[Path | str] = None,
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchResult:
    """
    Translate several classdef files concurrently.

    Args:
        paths: Source files, in submission order
        config: Translator configuration shared by all workers
        output_dir: Directory for the generated files (None keeps the
            output in memory only)
        max_workers: Worker limit, capped at the number of CPUs
        cancel_event: Set to stop starting new files

    Returns:
        BatchResult with one FileResult per path, in submission order
    """
    sources = [Path(p) for p in paths]
    config = config or TranslatorConfig()
    translator = ClassdefTranslator(config)

    if max_workers is not None and max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")

    cpus = os.cpu_count() or 1
    workers = min(max_workers or cpus, cpus, max(len(sources), 1))

    targets: list[Optional[Path]] = [None] * len(sources)
    if output_dir is not None:
        targets = plan_output_paths(sources, Path(output_dir), config.output_suffix)

    def run(index: int) -> FileResult:
        path = sources[index]
        if cancel_event is not None and cancel_event.is_set():
            return FileResult(path, FileStatus.CANCELLED)

        try:
            translation = translator.translate_file(path)
            if targets[index] is not None:
                write_output_atomic(targets[index], translation.output)
        except (MtocError, OSError) as exc:
            first_line = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
            logger.warning(f"{path}: translation failed: {first_line}")
            return FileResult(path, FileStatus.FAILED, error=exc)

        return FileResult(
            path,
            FileStatus.OK,
            output=translation.output,
            output_path=targets[index],
            diagnostics=translation.diagnostics,
        )

    results: list[Optional[FileResult]] = [None] * len(sources)
    logger.info(f"translating {len(sources)} files with {workers} workers")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(run, index): index for index in range(len(sources))}
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    batch = BatchResult(files=[r for r in results if r is not None])
    logger.info(
        f"batch finished: {batch.succeeded} ok, {batch.failed} failed, "
        f"{batch.cancelled} cancelled"
    )
    return batch
