import pytest
import sys
from datetime import date
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fake_supabase import FakeSupabaseClient
from shift_roster.data_manager import DataManager
from shift_roster.grid import (
    EMPTY_SHIFT, FALLBACK_EMPLOYEES, HOLIDAY_COLOR, ROW_BACKGROUNDS, SATURDAY_COLOR,
    ShiftGrid, holiday_name, month_days,
)
from shift_roster.shift_types import ShiftTypeRegistry, lighten_color


@pytest.fixture
def client():
    fake = FakeSupabaseClient()
    fake.seed_employee("橋本")
    fake.seed_employee("小林", "利治")
    fake.seed_shift(1, "2025-03-01", "成")
    fake.seed_shift(2, "2025-03-02", "Q")
    return fake


@pytest.fixture
def grid(client):
    """Fixture for a grid on March 2025 over a loaded fake store."""
    dm = DataManager(client)
    dm.load()
    return ShiftGrid(dm, ShiftTypeRegistry(), date(2025, 3, 15))


def test_days_cover_whole_month(grid):
    assert grid.days[0] == date(2025, 3, 1)
    assert grid.days[-1] == date(2025, 3, 31)
    assert len(month_days(2024, 2)) == 29


def test_month_navigation_wraps_years(grid):
    grid.set_month(2025, 1)
    grid.prev_month()
    assert (grid.current_year, grid.current_month) == (2024, 12)
    grid.next_month()
    grid.next_month()
    assert (grid.current_year, grid.current_month) == (2025, 2)
    assert grid.title == "2025年 2月 シフト表"


def test_get_shift_value_placeholder_for_empty_cell(grid):
    assert grid.get_shift_value(1, date(2025, 3, 1)) == "成"
    assert grid.get_shift_value(1, date(2025, 3, 2)) == EMPTY_SHIFT


def test_renamed_code_resolves_without_rewriting_rows(grid, client):
    """Renaming a type changes what stored cells display, not the stored rows."""
    grid.registry.update_shift_type(grid.registry.copy_of("成", code="N"))

    assert grid.get_shift_value(1, date(2025, 3, 1)) == "N"
    assert client.tables["shifts"][0]["shift_code"] == "成"
    style = grid.cell_style("N")
    assert style.foreground == "#3B82F6"


def test_renamed_then_deleted_code_falls_back_to_row_background(grid):
    grid.registry.update_shift_type(grid.registry.copy_of("成", code="N"), original_code="成")
    grid.registry.delete_shift_type("N")

    assert grid.get_shift_value(1, date(2025, 3, 1)) == "N"
    style = grid.cell_style("N", "even")
    assert style.background == ROW_BACKGROUNDS["even"]
    assert style.foreground is None


def test_cell_style(grid):
    assert grid.cell_style("成").background == lighten_color("#3B82F6", 0.75)
    assert grid.cell_style(EMPTY_SHIFT, "odd").background == ROW_BACKGROUNDS["odd"]
    unknown = grid.cell_style("Q", "even")
    assert unknown.background == ROW_BACKGROUNDS["even"]
    assert unknown.foreground is None


def test_rows_alternate_and_carry_values(grid):
    rows = grid.rows()
    assert [r.row_type for r in rows] == ["even", "odd"]
    assert rows[1].employee.display_name == "小林 利"
    assert rows[0].cells[0].value == "成"
    assert rows[0].cells[1].is_empty
    assert rows[1].cells[1].value == "Q"
    assert len(rows[0].cells) == 31


def test_fallback_employees_when_table_empty():
    dm = DataManager(FakeSupabaseClient())
    dm.load()
    grid = ShiftGrid(dm, ShiftTypeRegistry(), date(2025, 3, 1))
    assert grid.display_employees == list(FALLBACK_EMPLOYEES)
    assert grid.display_employees[3].display_name == "小林 広"


def test_header_flags_weekends_and_holidays(grid):
    header = grid.header()
    first, second = header[0], header[1]
    assert first.weekday_label == "土" and first.is_saturday
    assert first.text_color == SATURDAY_COLOR
    assert second.weekday_label == "日" and second.text_color == HOLIDAY_COLOR
    assert header[19].is_holiday
    assert header[19].text_color == HOLIDAY_COLOR
    assert header[2].text_color is None


def test_holiday_name():
    assert holiday_name(date(2025, 1, 1)) == "元日"
    assert holiday_name(date(2025, 1, 6)) is None


def test_change_and_clear_shift(grid, client):
    assert grid.change_shift(1, date(2025, 3, 5), "植") is True
    assert grid.get_shift_value(1, date(2025, 3, 5)) == "植"
    assert grid.clear_shift(1, date(2025, 3, 5)) is True
    assert grid.get_shift_value(1, date(2025, 3, 5)) == EMPTY_SHIFT


def test_error_message_surfaces_remote_failure(grid, client):
    assert grid.error_message is None
    assert not grid.loading and not grid.shifts_loading
    client.fail_on.add("upsert")
    assert grid.change_shift(1, date(2025, 3, 5), "植") is False
    assert "update shift" in grid.error_message
    assert grid.get_shift_value(1, date(2025, 3, 5)) == EMPTY_SHIFT


def test_loading_follows_employee_fetch(grid):
    grid.data_manager.employee_repository.loading = True
    assert grid.loading
    assert not grid.shifts_loading


def test_shift_options_follow_registry(grid):
    options = grid.shift_options()
    assert [t.code for t, _ in options] == grid.registry.codes()
    assert options[0][1] == lighten_color(options[0][0].color, 0.75)


def test_employee_operations(grid):
    employee = grid.add_employee("梶")
    assert grid.display_employees[-1] == employee
    assert grid.delete_employee(employee.id) is True
    assert all(e.id != employee.id for e in grid.display_employees)


def test_delete_all_shifts(grid):
    assert grid.delete_all_shifts() is True
    assert all(cell.is_empty for row in grid.rows() for cell in row.cells)
