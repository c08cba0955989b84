"""
Shift Type Registry for the Shift Roster

Keeps the in-memory list of assignable shift types (work-site codes) and
remembers code renames so that stored shift rows keep resolving to the
current code without being rewritten.
"""

import re
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple, Union


logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 2
MAX_LABEL_LENGTH = 8
DEFAULT_HOURS = (9, 18)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_HOURS_RE = re.compile(r"^(\d{1,2}):(\d{2})-(\d{1,2}):(\d{2})$")


class ShiftTypeError(Exception):
    """Base exception for shift type registry operations"""
    pass


class ShiftTypeValidationError(ShiftTypeError):
    """Raised when a shift type has an invalid field"""
    pass


class DuplicateShiftCodeError(ShiftTypeError):
    """Raised when a code is already used by another shift type"""
    pass


class ShiftTypeNotFoundError(ShiftTypeError):
    """Raised when no shift type matches the requested code or label"""
    pass


@dataclass(frozen=True)
class ShiftType:
    """A work-site category that can be assigned to a roster cell"""
    code: str
    label: str
    color: str
    hours: Optional[str] = None

    def validate(self, check_label_length: bool = True):
        """Check every field.

        The label length limit applies to labels typed into the editor;
        built-in and unchanged labels skip it with ``check_label_length=False``.
        """
        if not self.code or not self.code.strip():
            raise ShiftTypeValidationError("Shift code is required")
        if len(self.code) > MAX_CODE_LENGTH:
            raise ShiftTypeValidationError(
                f"Shift code '{self.code}' is longer than {MAX_CODE_LENGTH} characters"
            )
        if not self.label or not self.label.strip():
            raise ShiftTypeValidationError("Shift label is required")
        if check_label_length and len(self.label) > MAX_LABEL_LENGTH:
            raise ShiftTypeValidationError(
                f"Shift label '{self.label}' is longer than {MAX_LABEL_LENGTH} characters"
            )
        if not _COLOR_RE.match(self.color or ""):
            raise ShiftTypeValidationError(f"Invalid color '{self.color}', expected #RRGGBB")
        if self.hours and not _HOURS_RE.match(self.hours):
            raise ShiftTypeValidationError(f"Invalid hours '{self.hours}', expected H:MM-H:MM")


DEFAULT_SHIFT_TYPES: Tuple[ShiftType, ...] = (
    ShiftType("成", "成田969", "#3B82F6", "8:00-17:00"),
    ShiftType("富", "富里802", "#16A34A", "8:30-17:30"),
    ShiftType("パ", "楽々パーキング", "#CA8A04", "9:00-18:00"),
    ShiftType("植", "成田969植栽管理", "#DC2626", "7:00-16:00"),
    ShiftType("稲", "稲毛長沼", "#7C3AED", "8:00-17:00"),
    ShiftType("他", "その他", "#BE185D", "9:00-18:00"),
)

NEW_SHIFT_TYPE_TEMPLATE = ShiftType(code="", label="", color="#6366F1", hours="9:00-18:00")


def format_hour(value: int) -> str:
    return f"{value:02d}:00"


def format_hours(start_hour: int, end_hour: int) -> str:
    """Build an hours string from the editor's whole-hour range"""
    for value in (start_hour, end_hour):
        if not 0 <= value <= 23:
            raise ShiftTypeValidationError(f"Hour {value} is outside 0-23")
    return f"{format_hour(start_hour)}-{format_hour(end_hour)}"


def parse_hours(hours: Optional[str]) -> Tuple[int, int]:
    """Return the (start, end) whole hours of an hours string"""
    match = _HOURS_RE.match(hours or "")
    if not match:
        return DEFAULT_HOURS
    return int(match.group(1)), int(match.group(3))


def edited_hours(original: Optional[str], start_hour: int, end_hour: int) -> Optional[str]:
    """Hours to store after the editor's hour range was shown for ``original``.

    The original string, minutes included, is kept unless the range was moved.
    """
    if (start_hour, end_hour) == parse_hours(original):
        return original
    return format_hours(start_hour, end_hour)


def lighten_color(color: str, factor: float) -> str:
    """Blend a #RRGGBB color towards white by ``factor`` (0..1)"""
    hex_value = color.lstrip("#")
    channels = [int(hex_value[i:i + 2], 16) for i in (0, 2, 4)]
    lightened = [round(c + (255 - c) * factor) for c in channels]
    return "#" + "".join(f"{c:02x}" for c in lightened)


class ShiftTypeRegistry:
    """Ordered in-memory registry of shift types with rename tracking"""

    def __init__(self, shift_types: Optional[List[ShiftType]] = None):
        initial = list(DEFAULT_SHIFT_TYPES if shift_types is None else shift_types)
        self._types: List[ShiftType] = []
        # stored code -> current code
        self._code_map: Dict[str, str] = {}
        for shift_type in initial:
            self._append(shift_type, check_label_length=False)

    def __iter__(self) -> Iterator[ShiftType]:
        return iter(list(self._types))

    def __len__(self) -> int:
        return len(self._types)

    @property
    def shift_types(self) -> List[ShiftType]:
        return list(self._types)

    @property
    def renames(self) -> Dict[str, str]:
        return dict(self._code_map)

    def codes(self) -> List[str]:
        return [t.code for t in self._types]

    def find(self, code: str) -> Optional[ShiftType]:
        for shift_type in self._types:
            if shift_type.code == code:
                return shift_type
        return None

    def legend_columns(self) -> int:
        return 3 if len(self._types) >= 7 else 2

    def add_shift_type(self, new_type: ShiftType) -> ShiftType:
        """Append a new shift type to the end of the registry"""
        return self._append(new_type, check_label_length=True)

    def _append(self, new_type: ShiftType, check_label_length: bool) -> ShiftType:
        new_type.validate(check_label_length)
        if self.find(new_type.code):
            raise DuplicateShiftCodeError(f"Shift code '{new_type.code}' already exists")
        self._claim_code(new_type.code)
        self._types.append(new_type)
        logger.info(f"Added shift type {new_type.code} ({new_type.label})")
        return new_type

    def update_shift_type(self, updated_type: ShiftType,
                          original_code: Optional[str] = None) -> ShiftType:
        """Replace an existing shift type, remembering a code rename.

        The type being edited is located by ``original_code`` when given,
        otherwise by the label of ``updated_type``.
        """
        if original_code is not None:
            index = self._index_of(lambda t: t.code == original_code)
            lookup = f"code '{original_code}'"
        else:
            index = self._index_of(lambda t: t.label == updated_type.label)
            lookup = f"label '{updated_type.label}'"
        if index is None:
            raise ShiftTypeNotFoundError(f"No shift type with {lookup}")

        current = self._types[index]
        updated_type.validate(check_label_length=updated_type.label != current.label)
        old_code = current.code
        new_code = updated_type.code

        if new_code != old_code:
            if self.find(new_code):
                raise DuplicateShiftCodeError(f"Shift code '{new_code}' already exists")
            self._record_rename(old_code, new_code)

        self._types[index] = updated_type
        logger.info(f"Updated shift type {old_code} -> {new_code} ({updated_type.label})")
        return updated_type

    def delete_shift_type(self, type_or_code: Union[ShiftType, str]):
        code = type_or_code.code if isinstance(type_or_code, ShiftType) else type_or_code
        index = self._index_of(lambda t: t.code == code)
        if index is None:
            raise ShiftTypeNotFoundError(f"No shift type with code '{code}'")
        removed = self._types.pop(index)
        logger.info(f"Deleted shift type {removed.code} ({removed.label})")

    def get_updated_shift_code(self, old_code: str) -> str:
        """Return the current code for a stored code"""
        return self._code_map.get(old_code, old_code)

    def copy_of(self, code: str, /, **changes) -> ShiftType:
        """Return an edited copy of the type with ``code``"""
        shift_type = self.find(code)
        if shift_type is None:
            raise ShiftTypeNotFoundError(f"No shift type with code '{code}'")
        return replace(shift_type, **changes)

    def _index_of(self, predicate) -> Optional[int]:
        for index, shift_type in enumerate(self._types):
            if predicate(shift_type):
                return index
        return None

    def _claim_code(self, code: str):
        # A code renamed away earlier now belongs to a live type again.
        if code in self._code_map:
            logger.warning(
                f"Code '{code}' was renamed to '{self._code_map[code]}'; "
                f"cells stored as '{code}' now resolve to the new type"
            )
            del self._code_map[code]

    def _record_rename(self, old_code: str, new_code: str):
        if self._code_map.get(new_code) == old_code:
            # Renamed back to a code it used to have.
            del self._code_map[new_code]
        else:
            self._claim_code(new_code)
        for stored, current in list(self._code_map.items()):
            if current == old_code:
                self._code_map[stored] = new_code
        self._code_map[old_code] = new_code
        self._code_map = {k: v for k, v in self._code_map.items() if k != v}
