# =============================================================================
# test_batch.py - Batch Driver Tests
# =============================================================================
# Tests for translate_batch: result order, failure isolation, output
# files, cancellation and the aggregated diagnostic stream.
# =============================================================================

import threading

import pytest

from mtocpy.classdef import TranslatorConfig, translate_batch
from mtocpy.classdef.batch import (
    BatchResult,
    FileResult,
    FileStatus,
    plan_output_paths,
    write_output_atomic,
)
from mtocpy.classdef.errors import Diagnostic, Severity, SourceEncodingError


GOOD = "classdef {name}\n properties\n  x = 1; % the x\n end\nend\n"
BAD = "classdef Bad\n properties\n  x = (1\n end\nend\n"
WARNS = "classdef {name}\n properties ({attribute})\n  x\n end\nend\n"


@pytest.fixture
def config():
    return TranslatorConfig(emit_banner=False)


def write(directory, name, text):
    path = directory / f"{name}.m"
    path.write_text(text)
    return path


class TestBatchResults:

    def test_results_in_submission_order(self, tmp_path, config):
        paths = [write(tmp_path, f"C{i}", GOOD.format(name=f"C{i}")) for i in range(8)]
        result = translate_batch(paths, config, max_workers=4)
        assert [f.path for f in result.files] == paths
        assert all(f.ok for f in result.files)
        assert [f"class C{i}" in f.output for i, f in enumerate(result.files)] == [True] * 8

    def test_failure_does_not_stop_batch(self, tmp_path, config):
        paths = [
            write(tmp_path, "A", GOOD.format(name="A")),
            write(tmp_path, "Bad", BAD),
            write(tmp_path, "C", GOOD.format(name="C")),
        ]
        result = translate_batch(paths, config, output_dir=tmp_path / "out", max_workers=2)
        assert [f.status for f in result.files] == [FileStatus.OK, FileStatus.FAILED, FileStatus.OK]
        assert result.succeeded == 2
        assert result.failed == 1
        assert not result.ok
        assert (tmp_path / "out" / "A.cc").exists()
        assert (tmp_path / "out" / "C.cc").exists()
        assert not (tmp_path / "out" / "Bad.cc").exists()

    def test_error_line(self, tmp_path, config):
        path = write(tmp_path, "Bad", BAD)
        result = translate_batch([path], config)
        assert result.files[0].error_line().startswith(f"{path}:3:7: error: unclosed '('")
        assert result.report() == [result.files[0].error_line()]

    def test_missing_file_fails(self, tmp_path, config):
        result = translate_batch([tmp_path / "missing.m"], config)
        assert result.files[0].status == FileStatus.FAILED
        assert isinstance(result.files[0].error, FileNotFoundError)
        assert "error: Source file not found" in result.files[0].error_line()

    def test_invalid_utf8_fails(self, tmp_path, config):
        bad = tmp_path / "Enc.m"
        bad.write_bytes(b"classdef Enc\n  % caf\xe9\nend\n")
        paths = [bad, write(tmp_path, "A", GOOD.format(name="A"))]
        result = translate_batch(paths, config, max_workers=2)
        assert [f.status for f in result.files] == [FileStatus.FAILED, FileStatus.OK]
        assert isinstance(result.files[0].error, SourceEncodingError)
        assert result.report() == [f"{bad}:2:8: error: invalid UTF-8 byte 0xe9"]

    def test_output_written(self, tmp_path, config):
        path = write(tmp_path, "A", GOOD.format(name="A"))
        result = translate_batch([path], config, output_dir=tmp_path / "out")
        target = result.files[0].output_path
        assert target == tmp_path / "out" / "A.cc"
        assert target.read_text() == result.files[0].output

    def test_in_memory_without_output_dir(self, tmp_path, config):
        path = write(tmp_path, "A", GOOD.format(name="A"))
        result = translate_batch([path], config)
        assert result.files[0].output_path is None
        assert "class A" in result.files[0].output

    def test_empty_batch(self, config):
        result = translate_batch([], config)
        assert result.files == []
        assert result.ok


class TestDiagnostics:

    def test_diagnostics_in_submission_order(self, tmp_path, config):
        paths = [
            write(tmp_path, "A", WARNS.format(name="A", attribute="Alpha")),
            write(tmp_path, "B", WARNS.format(name="B", attribute="Beta")),
            write(tmp_path, "C", WARNS.format(name="C", attribute="Gamma")),
        ]
        result = translate_batch(paths, config, max_workers=3)
        messages = [d.message for d in result.diagnostics]
        assert messages == [
            "unknown attribute 'Alpha' ignored",
            "unknown attribute 'Beta' ignored",
            "unknown attribute 'Gamma' ignored",
        ]
        assert result.report()[0].startswith(f"{paths[0]}:2:")

    def test_report_without_info(self, tmp_path):
        path = tmp_path / "A.m"
        result = BatchResult(files=[
            FileResult(path, FileStatus.OK, diagnostics=[
                Diagnostic("block binds to x", severity=Severity.INFO),
                Diagnostic("unknown attribute 'Foo' ignored"),
            ]),
        ])
        assert result.report() == [
            "info: block binds to x",
            "warning: unknown attribute 'Foo' ignored",
        ]
        assert result.report(include_info=False) == ["warning: unknown attribute 'Foo' ignored"]


class TestCancellation:

    def test_cancelled_before_start(self, tmp_path, config):
        paths = [write(tmp_path, f"C{i}", GOOD.format(name=f"C{i}")) for i in range(3)]
        cancel = threading.Event()
        cancel.set()
        result = translate_batch(paths, config, output_dir=tmp_path / "out", cancel_event=cancel)
        assert [f.status for f in result.files] == [FileStatus.CANCELLED] * 3
        assert result.cancelled == 3
        assert not result.ok
        assert result.report() == [f"{p}: cancelled" for p in paths]
        assert not (tmp_path / "out").exists()

    def test_unset_event_runs_everything(self, tmp_path, config):
        paths = [write(tmp_path, "A", GOOD.format(name="A"))]
        result = translate_batch(paths, config, cancel_event=threading.Event())
        assert result.ok


class TestWorkers:

    def test_invalid_worker_count(self, tmp_path, config):
        with pytest.raises(ValueError):
            translate_batch([write(tmp_path, "A", GOOD.format(name="A"))], config, max_workers=0)


class TestOutputHelpers:

    def test_repeated_stems(self, tmp_path):
        planned = plan_output_paths(
            [tmp_path / "x" / "A.m", tmp_path / "y" / "A.m", tmp_path / "B.m"],
            tmp_path / "out",
            ".cc",
        )
        assert [p.name for p in planned] == ["A.cc", "A_2.cc", "B.cc"]

    def test_atomic_write(self, tmp_path):
        target = tmp_path / "sub" / "A.cc"
        write_output_atomic(target, "text\n")
        assert target.read_text() == "text\n"
        assert [p.name for p in target.parent.iterdir()] == ["A.cc"]

    def test_atomic_write_replaces(self, tmp_path):
        target = tmp_path / "A.cc"
        target.write_text("old")
        write_output_atomic(target, "new")
        assert target.read_text() == "new"
