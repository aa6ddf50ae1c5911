# =============================================================================
# test_translator.py - Translation Pipeline Tests
# =============================================================================
# Tests for ClassdefTranslator, the convenience functions and the
# translator configuration.
# =============================================================================

import pytest

from mtocpy import translate, translate_file
from mtocpy.classdef import ClassdefTranslator, TranslatorConfig
from mtocpy.classdef.errors import (
    ClassdefError,
    LexError,
    MacroTableError,
    Severity,
    SourceEncodingError,
    UnbalancedBracketError,
)


CLASS_SOURCE = """\
classdef Shape < handle
% A geometric shape.
%
% See also: Circle

  properties (SetAccess = protected)
    % The area @type double
    area = 0;
  end

  properties (Frobnicate)
    name;
  end

  methods
    function this = Shape(area)
      this.area = area;
    end
  end
end
"""


class TestTranslator:

    def test_result_fields(self):
        result = ClassdefTranslator().translate_source(CLASS_SOURCE, "Shape.m")
        assert result.filename == "Shape.m"
        assert result.tree.name == "Shape"
        assert result.token_count > 0
        assert "class Shape" in result.output

    def test_diagnostics_are_returned(self):
        result = ClassdefTranslator().translate_source(CLASS_SOURCE, "Shape.m")
        warnings = [d for d in result.diagnostics if d.severity == Severity.WARNING]
        assert len(warnings) == 1
        assert str(warnings[0]).startswith("Shape.m:11:")
        assert "unknown attribute 'Frobnicate'" in str(warnings[0])

    def test_each_call_has_fresh_diagnostics(self):
        translator = ClassdefTranslator()
        first = translator.translate_source(CLASS_SOURCE, "Shape.m")
        second = translator.translate_source(CLASS_SOURCE, "Shape.m")
        assert len(first.diagnostics) == len(second.diagnostics)

    def test_idempotent(self):
        assert translate(CLASS_SOURCE, "Shape.m") == translate(CLASS_SOURCE, "Shape.m")

    def test_documented_type_and_see_also(self):
        output = translate(CLASS_SOURCE, "Shape.m")
        assert "    ::double area = 0;" in output
        assert "  *  @sa Circle" in output

    def test_macros_from_config(self):
        source = "classdef A\n% Part of PROJECT.\nend\n"
        config = TranslatorConfig(emit_banner=False)
        config.macros.define("PROJECT", "mtocpy")
        assert "  * @brief Part of mtocpy." in translate(source, "A.m", config)


class TestTranslatorErrors:

    def test_lex_error_location(self):
        with pytest.raises(LexError) as exc:
            translate("classdef A\n properties\n  x = 'oops\n end\nend\n", "A.m")
        assert str(exc.value).startswith("A.m:3:7: error: unterminated character array")

    def test_bracket_error(self):
        with pytest.raises(UnbalancedBracketError):
            translate("classdef A\n properties\n  x = [1 2\n end\nend\n", "A.m")

    def test_all_errors_are_classdef_errors(self):
        with pytest.raises(ClassdefError):
            translate("classdef A\n enumeration\n  Red\n end\nend\n", "A.m")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            translate_file(tmp_path / "missing.m")

    def test_invalid_utf8(self, tmp_path):
        source = tmp_path / "A.m"
        source.write_bytes(b"classdef A\n properties\n  x = '\xc3';\n end\nend\n")
        with pytest.raises(SourceEncodingError) as exc:
            translate_file(source)
        assert str(exc.value).startswith(f"{source}:3:8: error: invalid UTF-8 byte 0xc3")
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)


class TestTranslateFile:

    def test_writes_output(self, tmp_path):
        source = tmp_path / "A.m"
        source.write_text("classdef A\nend\n")
        target = tmp_path / "A.cc"
        text = translate_file(source, target)
        assert target.read_text() == text
        assert "class A {" in text


class TestConfig:

    def test_defaults(self):
        config = TranslatorConfig()
        assert config.group is None
        assert config.type_placeholder == "matlabtypesubstitute"
        assert config.emit_banner
        assert config.output_suffix == ".cc"

    def test_from_env(self, monkeypatch, tmp_path):
        table = tmp_path / "macros.txt"
        table.write_text("#define NAME value\n")
        monkeypatch.setenv("MTOC_GROUP", "models")
        monkeypatch.setenv("MTOC_TYPE_PLACEHOLDER", "auto")
        monkeypatch.setenv("MTOC_NO_BANNER", "1")
        monkeypatch.setenv("MTOC_MACRO_TABLE", str(table))
        config = TranslatorConfig.from_env()
        assert config.group == "models"
        assert config.type_placeholder == "auto"
        assert not config.emit_banner
        assert "NAME" in config.macros

    def test_from_env_without_variables(self, monkeypatch):
        for name in ("MTOC_GROUP", "MTOC_TYPE_PLACEHOLDER", "MTOC_NO_BANNER", "MTOC_MACRO_TABLE"):
            monkeypatch.delenv(name, raising=False)
        assert TranslatorConfig.from_env() == TranslatorConfig()

    def test_with_macro_table_returns_copy(self, tmp_path):
        table = tmp_path / "macros.txt"
        table.write_text("#define NAME value\n")
        base = TranslatorConfig()
        config = base.with_macro_table(table)
        assert "NAME" in config.macros
        assert "NAME" not in base.macros

    def test_malformed_macro_table(self, tmp_path):
        table = tmp_path / "macros.txt"
        table.write_text("garbage\n")
        with pytest.raises(MacroTableError):
            TranslatorConfig().with_macro_table(table)

    def test_placeholder_used_in_output(self):
        source = "classdef A\n properties\n  x\n end\nend\n"
        output = translate(source, "A.m", TranslatorConfig(type_placeholder="auto"))
        assert "    auto x;" in output
