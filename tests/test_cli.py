"""
Tests for the mtocpp and mtocbatch Command-Line Tools
=====================================================

These tests run the click commands in-process with CliRunner and check
output, exit codes and the files they write.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from mtocpy import __version__
from mtocpy.cli.errors import ExitCode
from mtocpy.cli.mtocbatch import main as mtocbatch
from mtocpy.cli.mtocpp import main as mtocpp


CLASS_SOURCE = "classdef A < handle\n% PROJECT help\n  properties\n    x = 1; % the x\n  end\nend\n"
BROKEN_SOURCE = "classdef A\n x = 1\nend\n"


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Run each test in an empty directory with no MTOC_* settings."""
    for name in ("MTOC_GROUP", "MTOC_TYPE_PLACEHOLDER", "MTOC_NO_BANNER", "MTOC_MACRO_TABLE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def write(name: str, text: str) -> Path:
    path = Path(name)
    path.write_text(text)
    return path


# =============================================================================
# mtocpp Tests
# =============================================================================

class TestMtocpp:
    """Tests for the single-file filter."""

    def test_writes_to_stdout(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocpp, ["A.m"])
        assert result.exit_code == 0, result.output
        assert "class A\n  :public ::handle {" in result.output
        assert "@brief PROJECT help" in result.output
        assert "Autoinserted by mtocpy" in result.output

    def test_no_banner(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocpp, ["A.m", "--no-banner"])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("class A\n")

    def test_output_file(self, runner, workspace):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocpp, ["A.m", "-o", "A.cc"])
        assert result.exit_code == 0, result.output
        assert "class A" in (workspace / "A.cc").read_text()
        assert "class A" not in result.output

    def test_group(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocpp, ["-g", "models", "A.m"])
        assert "  * @ingroup models" in result.output

    def test_group_from_environment(self, runner, monkeypatch):
        write("A.m", CLASS_SOURCE)
        monkeypatch.setenv("MTOC_GROUP", "envgroup")
        result = runner.invoke(mtocpp, ["A.m"])
        assert "  * @ingroup envgroup" in result.output

    def test_macro_table_argument(self, runner):
        write("A.m", CLASS_SOURCE)
        write("macros.txt", "#define PROJECT mtocpy\n")
        result = runner.invoke(mtocpp, ["A.m", "macros.txt"])
        assert result.exit_code == 0, result.output
        assert "@brief mtocpy help" in result.output

    def test_ast_dump(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocpp, ["--ast", "A.m"])
        assert result.exit_code == 0, result.output
        assert "Class A" in result.output
        assert "property x = 1" in result.output

    def test_syntax_error(self, runner):
        write("A.m", BROKEN_SOURCE)
        result = runner.invoke(mtocpp, ["A.m"])
        assert result.exit_code == ExitCode.TRANSLATION_ERROR
        assert "A.m:2:2: error: unexpected token 'x'" in result.output

    def test_warning_reported(self, runner):
        write("A.m", "classdef A\n properties (Frobnicate)\n  x\n end\nend\n")
        result = runner.invoke(mtocpp, ["A.m"])
        assert result.exit_code == 0
        assert "A.m:2:" in result.output
        assert "unknown attribute 'Frobnicate' ignored" in result.output

    def test_missing_input(self, runner):
        result = runner.invoke(mtocpp, ["missing.m"])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_version(self, runner):
        result = runner.invoke(mtocpp, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(mtocpp, ["--help"])
        assert result.exit_code == 0
        assert "MACRO_TABLE" in result.output


# =============================================================================
# mtocbatch Tests
# =============================================================================

class TestMtocbatch:
    """Tests for the batch driver command."""

    def test_translates_into_directory(self, runner, workspace):
        write("A.m", CLASS_SOURCE)
        write("B.m", CLASS_SOURCE.replace("classdef A", "classdef B"))
        result = runner.invoke(mtocbatch, ["A.m", "B.m", "-d", "out", "-j", "2"])
        assert result.exit_code == 0, result.output
        assert "2 translated, 0 failed (2 files)" in result.output
        assert "class A" in (workspace / "out" / "A.cc").read_text()
        assert "class B" in (workspace / "out" / "B.cc").read_text()

    def test_failure_sets_exit_code(self, runner, workspace):
        write("A.m", CLASS_SOURCE)
        write("Bad.m", BROKEN_SOURCE)
        result = runner.invoke(mtocbatch, ["Bad.m", "A.m", "-d", "out"])
        assert result.exit_code == ExitCode.TRANSLATION_ERROR
        assert "Bad.m:2:2: error: unexpected token 'x'" in result.output
        assert "1 translated, 1 failed (2 files)" in result.output
        assert (workspace / "out" / "A.cc").exists()
        assert not (workspace / "out" / "Bad.cc").exists()

    def test_undecodable_file_reported(self, runner, workspace):
        write("A.m", CLASS_SOURCE)
        Path("Enc.m").write_bytes(b"classdef Enc\n\xff\nend\n")
        result = runner.invoke(mtocbatch, ["Enc.m", "A.m", "-d", "out"])
        assert result.exit_code == ExitCode.TRANSLATION_ERROR
        assert "Enc.m:2:1: error: invalid UTF-8 byte 0xff" in result.output
        assert "1 translated, 1 failed (2 files)" in result.output

    def test_macro_table_option(self, runner, workspace):
        write("A.m", CLASS_SOURCE)
        write("macros.txt", "#define PROJECT mtocpy\n")
        result = runner.invoke(mtocbatch, ["A.m", "-d", "out", "-m", "macros.txt"])
        assert result.exit_code == 0, result.output
        assert "@brief mtocpy help" in (workspace / "out" / "A.cc").read_text()

    def test_output_dir_required(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocbatch, ["A.m"])
        assert result.exit_code == 2

    def test_invalid_jobs(self, runner):
        write("A.m", CLASS_SOURCE)
        result = runner.invoke(mtocbatch, ["A.m", "-d", "out", "-j", "0"])
        assert result.exit_code == 2
