"""
Roster Grid Model for the Shift Roster

Composes the shift type registry, the remote data caches and the days of
the current month into the table the UI and the PDF exporter render.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

import holidays

from .data_manager import DataManager, Employee, DateLike
from .shift_types import ShiftType, ShiftTypeRegistry, lighten_color


logger = logging.getLogger(__name__)

EMPTY_SHIFT = "−"
WEEKDAY_LABELS = ("月", "火", "水", "木", "金", "土", "日")
ROW_BACKGROUNDS = {"even": "#FFFFFF", "odd": "#F1F5F9"}
HOLIDAY_COLOR = "#EF4444"
SATURDAY_COLOR = "#3B82F6"
CELL_LIGHTEN_FACTOR = 0.75

# Shown until the employees table has rows.
FALLBACK_EMPLOYEES: Tuple[Employee, ...] = (
    Employee(1, "橋本"),
    Employee(2, "棟方"),
    Employee(3, "薄田"),
    Employee(4, "小林", "広睴"),
    Employee(5, "梶"),
    Employee(6, "寺田"),
    Employee(7, "山崎"),
    Employee(8, "小林", "利治"),
)

_JAPAN_HOLIDAYS = holidays.country_holidays("JP")


def holiday_name(day: date) -> Optional[str]:
    """Name of the Japanese national holiday on ``day``, if any"""
    return _JAPAN_HOLIDAYS.get(day)


def month_days(year: int, month: int) -> List[date]:
    days_in_month = calendar.monthrange(year, month)[1]
    return [date(year, month, day) for day in range(1, days_in_month + 1)]


@dataclass
class DayHeader:
    """Column header for one day of the month"""
    date: date
    holiday_name: Optional[str] = None

    @property
    def day_label(self) -> str:
        return str(self.date.day)

    @property
    def weekday_label(self) -> str:
        return WEEKDAY_LABELS[self.date.weekday()]

    @property
    def is_saturday(self) -> bool:
        return self.date.weekday() == 5

    @property
    def is_sunday(self) -> bool:
        return self.date.weekday() == 6

    @property
    def is_holiday(self) -> bool:
        return self.holiday_name is not None

    @property
    def text_color(self) -> Optional[str]:
        if self.is_holiday or self.is_sunday:
            return HOLIDAY_COLOR
        if self.is_saturday:
            return SATURDAY_COLOR
        return None


@dataclass
class CellStyle:
    background: str
    foreground: Optional[str] = None


@dataclass
class GridCell:
    date: date
    value: str
    style: CellStyle

    @property
    def is_empty(self) -> bool:
        return self.value == EMPTY_SHIFT


@dataclass
class GridRow:
    employee: Employee
    row_type: str  # "even" or "odd"
    cells: List[GridCell]


class ShiftGrid:
    """Month view over employees, shift codes and shift types"""

    def __init__(self, data_manager: DataManager, registry: ShiftTypeRegistry,
                 current_date: Optional[date] = None):
        self.data_manager = data_manager
        self.registry = registry
        start = current_date or date.today()
        self.current_year = start.year
        self.current_month = start.month

    # Month navigation
    @property
    def days(self) -> List[date]:
        return month_days(self.current_year, self.current_month)

    @property
    def title(self) -> str:
        return f"{self.current_year}年 {self.current_month}月 シフト表"

    def set_month(self, year: int, month: int):
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {month}")
        self.current_year = year
        self.current_month = month

    def prev_month(self):
        if self.current_month == 1:
            self.set_month(self.current_year - 1, 12)
        else:
            self.set_month(self.current_year, self.current_month - 1)

    def next_month(self):
        if self.current_month == 12:
            self.set_month(self.current_year + 1, 1)
        else:
            self.set_month(self.current_year, self.current_month + 1)

    # State
    @property
    def loading(self) -> bool:
        return self.data_manager.employee_repository.loading

    @property
    def shifts_loading(self) -> bool:
        return self.data_manager.shift_repository.loading

    @property
    def error_message(self) -> Optional[str]:
        error = self.data_manager.error
        return str(error) if error else None

    @property
    def display_employees(self) -> List[Employee]:
        employees = self.data_manager.employees
        return list(employees) if employees else list(FALLBACK_EMPLOYEES)

    # Cells
    def get_shift_value(self, employee_id: int, day: DateLike) -> str:
        shift = self.data_manager.shift_repository.get_shift(employee_id, day)
        return self.registry.get_updated_shift_code(shift) if shift else EMPTY_SHIFT

    def cell_style(self, code: str, row_type: str = "even") -> CellStyle:
        shift_type = self.registry.find(code) if code != EMPTY_SHIFT else None
        if shift_type is None:
            return CellStyle(background=ROW_BACKGROUNDS[row_type])
        return CellStyle(
            background=lighten_color(shift_type.color, CELL_LIGHTEN_FACTOR),
            foreground=shift_type.color
        )

    def header(self) -> List[DayHeader]:
        return [DayHeader(day, holiday_name(day)) for day in self.days]

    def rows(self) -> List[GridRow]:
        days = self.days
        rows = []
        for index, employee in enumerate(self.display_employees):
            row_type = "even" if index % 2 == 0 else "odd"
            cells = []
            for day in days:
                value = self.get_shift_value(employee.id, day)
                cells.append(GridCell(day, value, self.cell_style(value, row_type)))
            rows.append(GridRow(employee, row_type, cells))
        return rows

    def shift_options(self) -> List[Tuple[ShiftType, str]]:
        """Picker entries: each shift type with its lightened background"""
        return [
            (shift_type, lighten_color(shift_type.color, CELL_LIGHTEN_FACTOR))
            for shift_type in self.registry
        ]

    # Edits
    def change_shift(self, employee_id: int, day: DateLike, new_shift: str) -> bool:
        logger.debug(f"Changing shift of employee {employee_id} on {day} to {new_shift}")
        return self.data_manager.shift_repository.update_shift(employee_id, day, new_shift)

    def clear_shift(self, employee_id: int, day: DateLike) -> bool:
        return self.data_manager.shift_repository.clear_shift(employee_id, day)

    def delete_all_shifts(self) -> bool:
        return self.data_manager.shift_repository.delete_all_shifts()

    def add_employee(self, name: str, given_name: Optional[str] = None) -> Employee:
        return self.data_manager.employee_repository.add_employee(name, given_name)

    def update_employee(self, employee: Employee) -> bool:
        return self.data_manager.employee_repository.update_employee(employee)

    def delete_employee(self, employee_id: int) -> bool:
        return self.data_manager.delete_employee(employee_id)
