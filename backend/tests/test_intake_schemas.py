"""Tests for author/keyword normalization and staged file naming."""
import pytest

from app.intake.schemas import (
    CommaString,
    FileKind,
    JsonString,
    StringList,
    classify_text_list,
    get_file_kind,
    normalize_text_list,
    safe_local_name,
)


class TestClassifyTextList:

    def test_none_is_not_supplied(self):
        assert classify_text_list(None) is None

    def test_list_is_string_list(self):
        assert classify_text_list(["a", "b"]) == StringList(["a", "b"])

    def test_single_form_value_is_unwrapped(self):
        assert classify_text_list(["a, b"]) == CommaString("a, b")
        assert classify_text_list(['["a"]']) == JsonString('["a"]')

    def test_bracketed_text_is_json(self):
        assert isinstance(classify_text_list(' ["x", "y"] '), JsonString)


class TestNormalizeTextList:

    @pytest.mark.parametrize(
        "value",
        [
            ["Ada Lovelace", "Alan Turing"],
            "Ada Lovelace, Alan Turing",
            '["Ada Lovelace", "Alan Turing"]',
            ["  Ada Lovelace ", "", "Alan Turing  "],
            " Ada Lovelace ,, Alan Turing ,",
        ],
    )
    def test_all_shapes_yield_same_names(self, value):
        assert normalize_text_list(value) == ["Ada Lovelace", "Alan Turing"]

    def test_invalid_json_falls_back_to_commas(self):
        assert normalize_text_list("[a, b]") == ["a", "b"]

    def test_non_string_json_items_are_stringified(self):
        assert normalize_text_list("[1, 2, null]") == ["1", "2"]

    def test_empty_inputs(self):
        assert normalize_text_list(None) == []
        assert normalize_text_list("") == []
        assert normalize_text_list("[]") == []
        assert normalize_text_list([" ", ""]) == []


class TestFileNames:

    def test_get_file_kind(self):
        assert get_file_kind("paper.PDF") is FileKind.PDF
        assert get_file_kind("paper.docx") is FileKind.DOCX
        assert get_file_kind("paper.doc") is None
        assert get_file_kind("noext") is None

    def test_safe_local_name(self):
        assert safe_local_name("My Paper (v2).pdf", 1700000000000) == "1700000000000-My_Paper_v2.pdf"

    def test_safe_local_name_strips_directories(self):
        assert safe_local_name("..\\..\\evil.docx", 1) == "1-evil.docx"
        assert safe_local_name("/etc/passwd", 2) == "2-passwd"

    def test_safe_local_name_fallback(self):
        assert safe_local_name("###", 5) == "5-upload"

    def test_kind_properties(self):
        assert FileKind.PDF.extension == ".pdf"
        assert FileKind.PDF.media_type == "application/pdf"
        assert FileKind.DOCX.media_type.endswith("wordprocessingml.document")
