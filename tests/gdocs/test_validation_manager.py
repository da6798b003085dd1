"""
Unit tests for ValidationManager.
"""
import pytest

from gdocs.errors import ErrorCode, InvalidRequestError
from gdocs.managers.validation_manager import ValidationManager


@pytest.fixture
def validator():
    return ValidationManager()


class TestDocumentId:

    def test_valid(self, validator):
        assert validator.validate_document_id("1AbC-d_9") == (True, None)

    @pytest.mark.parametrize("document_id", ["", None, "abc def", "'quoted'"])
    def test_invalid(self, validator, document_id):
        is_valid, error = validator.validate_document_id(document_id)
        assert not is_valid
        assert error.code == ErrorCode.INVALID_PARAM_VALUE.value


class TestIndices:

    @pytest.mark.parametrize("index", [1, 500])
    def test_valid_index(self, validator, index):
        assert validator.validate_index(index)[0]

    @pytest.mark.parametrize("index", [0, -3, 1.5, True, "4"])
    def test_invalid_index(self, validator, index):
        assert not validator.validate_index(index)[0]

    def test_valid_range(self, validator):
        assert validator.validate_index_range(1, 2) == (True, None)

    @pytest.mark.parametrize("start,end", [(5, 5), (6, 5), (-1, 4), (None, 4), (1, "9")])
    def test_invalid_range(self, validator, start, end):
        is_valid, error = validator.validate_index_range(start, end)
        assert not is_valid
        assert error.code == ErrorCode.INVALID_INDEX_RANGE.value

    def test_occurrence(self, validator):
        assert validator.validate_occurrence(1)[0]
        assert not validator.validate_occurrence(0)[0]
        assert not validator.validate_occurrence(True)[0]


class TestTables:

    def test_dimensions(self, validator):
        assert validator.validate_table_dimensions(3, 4)[0]
        assert validator.validate_table_dimensions(0, 4)[1].code == ErrorCode.INVALID_TABLE_DIMENSIONS.value
        assert validator.validate_table_dimensions(1001, 4)[1].code == ErrorCode.INVALID_TABLE_DATA.value

    def test_short_rows_allowed(self, validator):
        assert validator.validate_table_data(["A", "B", "C"], [["1"], ["1", "2"]]) == (True, None)

    def test_long_row_rejected(self, validator):
        is_valid, error = validator.validate_table_data(["A"], [["1", "2"]])
        assert not is_valid
        assert "only 1 headers" in error.message

    def test_non_string_cell(self, validator):
        is_valid, error = validator.validate_table_data(["A"], [[3]])
        assert not is_valid
        assert "int" in error.message

    def test_rows_not_lists(self, validator):
        assert not validator.validate_table_data(["A"], ["1"])[0]


class TestStyles:

    def test_empty_text_style_is_valid(self, validator):
        assert validator.validate_text_style(None)[0]
        assert validator.validate_text_style({'bold': None})[0]

    def test_unknown_text_style_field(self, validator):
        is_valid, error = validator.validate_text_style({'blink': True})
        assert not is_valid
        assert 'blink' in error.message

    @pytest.mark.parametrize("size", [0, 401, "12", True])
    def test_font_size_out_of_range(self, validator, size):
        assert not validator.validate_text_style({'font_size': size})[0]

    @pytest.mark.parametrize("color", ["#fff", "#A1B2C3", "Red", "grey"])
    def test_valid_colors(self, validator, color):
        assert validator.validate_text_style({'foreground_color': color})[0]

    @pytest.mark.parametrize("color", ["#abcd", "mauve", "", "#GGGGGG"])
    def test_invalid_colors(self, validator, color):
        is_valid, error = validator.validate_text_style({'background_color': color})
        assert not is_valid
        assert error.code == ErrorCode.INVALID_COLOR_FORMAT.value

    def test_paragraph_alignment_aliases(self, validator):
        assert validator.validate_paragraph_style({'alignment': 'left'})[0]
        assert validator.validate_paragraph_style({'alignment': 'JUSTIFIED'})[0]
        assert not validator.validate_paragraph_style({'alignment': 'MIDDLE'})[0]

    def test_negative_spacing(self, validator):
        assert not validator.validate_paragraph_style({'space_above': -1})[0]


class TestMisc:

    def test_bullet_preset(self, validator):
        assert validator.validate_bullet_preset("BULLET_DISC_CIRCLE_SQUARE")[0]
        assert not validator.validate_bullet_preset("BULLET_SMILEY")[0]

    @pytest.mark.parametrize("url,valid", [
        ("https://example.com/a.png", True),
        ("http://example.com/a.png", True),
        ("example.com/a.png", False),
        ("https://", False),
        (None, False),
    ])
    def test_image_url(self, validator, url, valid):
        assert validator.validate_image_url(url)[0] is valid

    def test_image_size(self, validator):
        assert validator.validate_image_size(None, 20)[0]
        assert not validator.validate_image_size(0, 20)[0]

    def test_raise_if_invalid(self, validator):
        with pytest.raises(InvalidRequestError) as exc_info:
            validator.raise_if_invalid(validator.validate_index(0), "doc123")
        assert exc_info.value.document_id == "doc123"
        validator.raise_if_invalid(validator.validate_index(1))
