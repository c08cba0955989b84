import pytest
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.shift_types import (
    DEFAULT_SHIFT_TYPES, DuplicateShiftCodeError, ShiftType, ShiftTypeNotFoundError,
    ShiftTypeRegistry, ShiftTypeValidationError, edited_hours, format_hours, lighten_color,
    parse_hours,
)


@pytest.fixture
def registry():
    """Fixture for a registry seeded with the default shift types."""
    return ShiftTypeRegistry()


def test_defaults_loaded_in_order(registry):
    assert registry.codes() == ["成", "富", "パ", "植", "稲", "他"]
    assert registry.find("富").label == "富里802"
    assert len(registry) == len(DEFAULT_SHIFT_TYPES)


def test_registry_builds_with_long_default_label():
    """Built-in labels are not held to the editor's length limit."""
    registry = ShiftTypeRegistry()
    assert len(registry) == 6
    assert registry.find("植").label == "成田969植栽管理"


def test_edit_keeps_long_label_unless_changed(registry):
    registry.update_shift_type(registry.copy_of("植", color="#000000"), original_code="植")
    assert registry.find("植").color == "#000000"

    with pytest.raises(ShiftTypeValidationError):
        registry.update_shift_type(registry.copy_of("植", label="成田969植栽管理2"),
                                   original_code="植")


def test_add_appends_at_end(registry):
    registry.add_shift_type(ShiftType("新", "新宿", "#112233", "09:00-18:00"))
    assert registry.codes()[-1] == "新"


def test_add_rejects_duplicate_code(registry):
    with pytest.raises(DuplicateShiftCodeError):
        registry.add_shift_type(ShiftType("成", "別の成田", "#112233"))


@pytest.mark.parametrize("shift_type", [
    ShiftType("", "ラベル", "#112233"),
    ShiftType("ABC", "ラベル", "#112233"),
    ShiftType("A", "", "#112233"),
    ShiftType("A", "123456789", "#112233"),
    ShiftType("A", "ラベル", "red"),
    ShiftType("A", "ラベル", "#112233", "nine to five"),
])
def test_add_rejects_invalid_fields(registry, shift_type):
    with pytest.raises(ShiftTypeValidationError):
        registry.add_shift_type(shift_type)


def test_update_without_code_change_keeps_position(registry):
    updated = registry.copy_of("富", color="#000000")
    registry.update_shift_type(updated)
    assert registry.codes()[1] == "富"
    assert registry.find("富").color == "#000000"
    assert registry.renames == {}


def test_rename_resolves_old_code(registry):
    """Cells stored with the old code resolve to the new code."""
    renamed = registry.copy_of("成", code="N")
    registry.update_shift_type(renamed)

    assert registry.codes()[0] == "N"
    assert registry.find("成") is None
    assert registry.get_updated_shift_code("成") == "N"
    assert registry.get_updated_shift_code("富") == "富"


def test_rename_located_by_original_code_allows_label_change(registry):
    renamed = registry.copy_of("稲", code="I", label="稲毛")
    registry.update_shift_type(renamed, original_code="稲")
    assert registry.find("I").label == "稲毛"
    assert registry.get_updated_shift_code("稲") == "I"


def test_update_unknown_type_raises(registry):
    with pytest.raises(ShiftTypeNotFoundError):
        registry.update_shift_type(ShiftType("X", "存在しない", "#123456"))


def test_rename_onto_existing_code_rejected(registry):
    with pytest.raises(DuplicateShiftCodeError):
        registry.update_shift_type(registry.copy_of("成", code="富"))
    assert registry.find("成") is not None


def test_rename_chain_collapses(registry):
    """A -> B then B -> C resolves both stored codes to C in one lookup."""
    registry.update_shift_type(registry.copy_of("成", code="B"))
    registry.update_shift_type(registry.copy_of("B", code="C"), original_code="B")

    assert registry.get_updated_shift_code("成") == "C"
    assert registry.get_updated_shift_code("B") == "C"


def test_rename_back_drops_identity_entry(registry):
    registry.update_shift_type(registry.copy_of("成", code="B"))
    registry.update_shift_type(registry.copy_of("B", code="成"), original_code="B")

    assert registry.get_updated_shift_code("成") == "成"
    assert registry.get_updated_shift_code("B") == "成"
    assert "成" not in registry.renames


def test_new_type_claims_renamed_away_code(registry):
    registry.update_shift_type(registry.copy_of("成", code="B"))
    registry.add_shift_type(ShiftType("成", "新しい成田", "#654321"))
    assert registry.get_updated_shift_code("成") == "成"


def test_delete_removes_type(registry):
    registry.delete_shift_type("パ")
    assert "パ" not in registry.codes()
    registry.delete_shift_type(registry.find("他"))
    assert registry.codes() == ["成", "富", "植", "稲"]


def test_delete_unknown_raises(registry):
    with pytest.raises(ShiftTypeNotFoundError):
        registry.delete_shift_type("Z")


def test_legend_columns_switch_at_seven(registry):
    assert registry.legend_columns() == 2
    registry.add_shift_type(ShiftType("新", "新宿", "#112233"))
    assert registry.legend_columns() == 3


def test_hours_helpers():
    assert format_hours(8, 17) == "08:00-17:00"
    assert parse_hours("8:30-17:30") == (8, 17)
    assert parse_hours(None) == (9, 18)
    assert parse_hours("garbage") == (9, 18)
    with pytest.raises(ShiftTypeValidationError):
        format_hours(9, 24)


def test_edited_hours_keeps_minutes_when_range_untouched():
    assert edited_hours("8:30-17:30", 8, 17) == "8:30-17:30"
    assert edited_hours("8:30-17:30", 9, 17) == "09:00-17:00"
    assert edited_hours(None, 9, 18) is None
    assert edited_hours(None, 7, 16) == "07:00-16:00"


def test_lighten_color():
    assert lighten_color("#000000", 0.5) == "#808080"
    assert lighten_color("#3B82F6", 0) == "#3b82f6"
    assert lighten_color("#3B82F6", 1) == "#ffffff"
