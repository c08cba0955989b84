import pytest
import sys
from pathlib import Path
from datetime import date, datetime
import tempfile
import os

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pandas as pd

from fake_supabase import FakeSupabaseClient
from shift_roster.data_manager import DataManager
from shift_roster.grid import EMPTY_SHIFT, ShiftGrid
from shift_roster.reporting import ExportManager, build_document_definition
from shift_roster.shift_types import ShiftType, ShiftTypeRegistry


@pytest.fixture
def grid():
    """Fixture for a March 2025 grid with one employee and two assignments."""
    client = FakeSupabaseClient()
    client.seed_employee("橋本")
    client.seed_employee("小林", "広睴")
    client.seed_shift(1, "2025-03-01", "成")
    client.seed_shift(2, "2025-03-31", "他")
    dm = DataManager(client)
    dm.load()
    return ShiftGrid(dm, ShiftTypeRegistry(), date(2025, 3, 1))


@pytest.fixture
def export_manager(grid):
    """Fixture for an ExportManager instance."""
    return ExportManager(grid)


def test_document_definition_layout(grid):
    definition = build_document_definition(grid, datetime(2025, 3, 2, 9, 5))

    assert definition["page_size"] == "A4"
    assert definition["page_orientation"] == "landscape"
    assert definition["header"]["text"] == "2025年 3月度 シフト表"
    assert definition["footer"]["text"] == "作成日: 2025/03/02 09:05"

    header_row, first_row, second_row = definition["table"]["body"]
    assert header_row[0]["text"] == "担当者"
    assert len(header_row) == 32
    assert header_row[1]["text"] == "1" and header_row[1]["weekday"] == "(土)"
    assert definition["table"]["widths"][0] == 80

    assert first_row[0]["text"] == "橋本"
    assert second_row[0]["text"] == "小林 広"
    assert first_row[1]["text"] == "成"
    assert first_row[1]["color"] == "#3B82F6"
    assert first_row[1]["fill_color"] is not None
    assert first_row[2]["text"] == EMPTY_SHIFT
    assert first_row[2]["color"] == "#000000"
    assert first_row[2]["fill_color"] is None


def test_document_definition_legend_splits_in_two(grid):
    grid.registry.add_shift_type(ShiftType("新", "新宿", "#112233"))
    legend = build_document_definition(grid)["legend"]

    assert legend["title"] == "勤務地一覧"
    left, right = legend["columns"]
    assert len(left) == 4 and len(right) == 3
    assert right[-1] == {"code": "新", "label": "新宿", "color": "#112233", "hours": ""}


def test_document_definition_uses_renamed_codes(grid):
    grid.registry.update_shift_type(grid.registry.copy_of("他", code="X"))
    body = build_document_definition(grid)["table"]["body"]
    assert body[2][31]["text"] == "X"
    assert body[2][31]["color"] == "#BE185D"


def test_pdf_export_basic(export_manager):
    """Test PDF export works on valid seeded data."""
    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmpfile:
        output_path = tmpfile.name
    success = export_manager.export_calendar("pdf", output_path)
    assert success
    assert os.path.exists(output_path)
    assert os.path.getsize(output_path) > 200
    os.unlink(output_path)


def test_pdf_export_bad_path(export_manager):
    """Test PDF export failure if path is unwritable (should not throw, just return False)."""
    result = export_manager.export_calendar("pdf", "/not_a_dir/this_file_should_fail.pdf")
    assert result is False


def test_excel_export_basic(export_manager):
    with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as tmpfile:
        output_path = tmpfile.name

    assert export_manager.export_calendar("excel", output_path)
    sheets = pd.read_excel(output_path, sheet_name=None)
    assert set(sheets) == {"シフト表", "勤務地一覧"}
    assert sheets["シフト表"].iloc[0]["1"] == "成"
    os.unlink(output_path)


def test_csv_export_basic(export_manager):
    with tempfile.NamedTemporaryFile(suffix=".csv", delete=False) as tmpfile:
        output_path = tmpfile.name

    assert export_manager.export_calendar("csv", output_path)
    frame = pd.read_csv(output_path, encoding="utf-8-sig")
    assert list(frame.columns[:3]) == ["担当者", "1", "2"]
    assert frame.iloc[1]["31"] == "他"
    assert frame.iloc[0]["2"] == EMPTY_SHIFT
    os.unlink(output_path)


def test_unsupported_format(export_manager):
    with pytest.raises(ValueError):
        export_manager.export_calendar("docx", "roster.docx")


def test_default_filename(export_manager):
    assert export_manager.get_default_filename("pdf") == "シフト表_2025年3月.pdf"
    assert export_manager.get_default_filename("excel") == "シフト表_2025年3月.xlsx"
