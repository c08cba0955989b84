"""
Data Manager for the Shift Roster

Handles all remote I/O against the Supabase tables (employees, shifts) and
keeps optimistic local caches of both, keyed the way the roster grid reads
them.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from supabase import Client, create_client

from .config import Settings


logger = logging.getLogger(__name__)

EMPLOYEES_TABLE = "employees"
SHIFTS_TABLE = "shifts"
MAX_NAME_LENGTH = 10

SCHEMA_STATEMENTS = {
    "table_employees": """
        CREATE TABLE IF NOT EXISTS employees (
          id SERIAL PRIMARY KEY,
          name TEXT NOT NULL,
          given_name TEXT,
          created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "table_shifts": """
        CREATE TABLE IF NOT EXISTS shifts (
          id SERIAL PRIMARY KEY,
          employee_id INTEGER NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
          date DATE NOT NULL,
          shift_code TEXT NOT NULL,
          created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
          UNIQUE(employee_id, date)
        )
    """,
    "table_shift_types": """
        CREATE TABLE IF NOT EXISTS shift_types (
          id SERIAL PRIMARY KEY,
          code TEXT NOT NULL UNIQUE,
          label TEXT NOT NULL,
          color TEXT NOT NULL,
          created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """,
}


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class RemoteStoreError(DataManagerError):
    """Raised when a request to the remote store fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class EmployeeNotFoundError(DataManagerError):
    """Raised when an employee id is not in the local cache"""
    pass


DateLike = Union[date, datetime, str]


def format_date(day: DateLike) -> str:
    """Format a date the way the shifts table stores it (YYYY-MM-DD)"""
    if isinstance(day, datetime):
        day = day.date()
    if isinstance(day, date):
        return day.strftime("%Y-%m-%d")
    return datetime.strptime(day, "%Y-%m-%d").strftime("%Y-%m-%d")


def shift_key(employee_id: int, day: DateLike) -> str:
    """Composite cache key for one employee on one day"""
    return f"{employee_id}-{format_date(day)}"


def _key_employee_id(key: str) -> int:
    return int(key.split("-", 1)[0])


@dataclass
class Employee:
    """Employee as shown on the roster"""
    id: int
    name: str
    given_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.given_name:
            return f"{self.name} {self.given_name[0]}"
        return self.name

    def to_row(self) -> Dict[str, Any]:
        return {"name": self.name, "given_name": self.given_name or None}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Employee':
        return cls(
            id=row["id"],
            name=row["name"],
            given_name=row.get("given_name") or None
        )


def validate_employee_names(name: str, given_name: Optional[str] = None):
    if not name or not name.strip():
        raise DataValidationError("Employee name is required")
    if len(name.strip()) > MAX_NAME_LENGTH:
        raise DataValidationError(f"Employee name must be at most {MAX_NAME_LENGTH} characters")
    if given_name and len(given_name.strip()) > MAX_NAME_LENGTH:
        raise DataValidationError(f"Given name must be at most {MAX_NAME_LENGTH} characters")


def create_supabase_client(settings: Settings) -> Client:
    """Create a Supabase client from settings"""
    settings.require_credentials()
    return create_client(settings.supabase_url, settings.supabase_key)


def refresh_session(client: Client):
    """Refresh the auth session if one exists; failures never block startup"""
    try:
        client.auth.get_session()
    except Exception as e:
        logger.warning(f"Session refresh failed, continuing without it: {e}")


class _RemoteRepository:
    """Shared loading/error bookkeeping for table-backed caches"""

    def __init__(self, client: Client):
        self.client = client
        self.loading = False
        self.error: Optional[RemoteStoreError] = None

    def clear_error(self):
        self.error = None

    def _record_error(self, action: str, exc: Exception) -> RemoteStoreError:
        error = RemoteStoreError(f"Failed to {action}: {exc}")
        error.__cause__ = exc
        self.error = error
        logger.error(f"Error while trying to {action}: {exc}", exc_info=True)
        return error


class ShiftRepository(_RemoteRepository):
    """Shift-code matrix cache keyed by ``"{employee_id}-{YYYY-MM-DD}"``"""

    def __init__(self, client: Client):
        super().__init__(client)
        self.shifts: Dict[str, str] = {}

    def fetch_shifts(self) -> Dict[str, str]:
        """Reload every shift row into the cache"""
        self.loading = True
        try:
            response = self.client.table(SHIFTS_TABLE).select("*").execute()
            formatted = {}
            for row in response.data or []:
                formatted[shift_key(row["employee_id"], row["date"])] = row["shift_code"]
            self.shifts = formatted
            logger.info(f"Fetched {len(formatted)} shifts")
        except Exception as e:
            self._record_error("fetch shifts", e)
        finally:
            self.loading = False
        return self.shifts

    def get_shift(self, employee_id: int, day: DateLike) -> Optional[str]:
        return self.shifts.get(shift_key(employee_id, day))

    def update_shift(self, employee_id: int, day: DateLike, shift_code: str) -> bool:
        """Assign a code optimistically, then upsert it on (employee_id, date).

        If the remote write fails the cache is reloaded, which drops the
        optimistic value.
        """
        if not shift_code:
            raise DataValidationError("Shift code is required")
        date_string = format_date(day)
        self.shifts[shift_key(employee_id, date_string)] = shift_code

        try:
            self.client.table(SHIFTS_TABLE).upsert(
                {
                    "employee_id": employee_id,
                    "date": date_string,
                    "shift_code": shift_code,
                },
                on_conflict="employee_id,date",
                ignore_duplicates=False,
            ).execute()
            return True
        except Exception as e:
            self._record_error("update shift", e)
            self.fetch_shifts()
            return False

    def clear_shift(self, employee_id: int, day: DateLike) -> bool:
        """Remove one assignment optimistically, reverting on failure"""
        date_string = format_date(day)
        self.shifts.pop(shift_key(employee_id, date_string), None)

        try:
            (self.client.table(SHIFTS_TABLE)
                .delete()
                .eq("employee_id", employee_id)
                .eq("date", date_string)
                .execute())
            return True
        except Exception as e:
            self._record_error("clear shift", e)
            self.fetch_shifts()
            return False

    def delete_all_shifts(self) -> bool:
        self.loading = True
        try:
            response = self.client.table(SHIFTS_TABLE).select("id").execute()
            ids = [row["id"] for row in response.data or []]
            if ids:
                self.client.table(SHIFTS_TABLE).delete().in_("id", ids).execute()
            self.shifts = {}
            logger.info(f"Deleted {len(ids)} shifts")
            return True
        except Exception as e:
            self._record_error("delete all shifts", e)
            return False
        finally:
            self.loading = False

    def drop_employee(self, employee_id: int):
        """Forget cached cells of an employee removed remotely"""
        self.shifts = {
            key: code for key, code in self.shifts.items()
            if _key_employee_id(key) != employee_id
        }


class EmployeeRepository(_RemoteRepository):
    """Employee list cache ordered by id"""

    def __init__(self, client: Client):
        super().__init__(client)
        self.employees: List[Employee] = []

    def fetch_employees(self) -> List[Employee]:
        self.loading = True
        try:
            response = (self.client.table(EMPLOYEES_TABLE)
                        .select("*")
                        .order("id", desc=False)
                        .execute())
            self.employees = [Employee.from_row(row) for row in response.data or []]
            logger.info(f"Fetched {len(self.employees)} employees")
        except Exception as e:
            self._record_error("fetch employees", e)
        finally:
            self.loading = False
        return self.employees

    def get_employee_by_id(self, employee_id: int) -> Optional[Employee]:
        for employee in self.employees:
            if employee.id == employee_id:
                return employee
        return None

    def add_employee(self, name: str, given_name: Optional[str] = None) -> Employee:
        """Insert a new employee and return it with its assigned id.

        Remote failures are recorded on ``error`` and re-raised.
        """
        validate_employee_names(name, given_name)
        row = {"name": name.strip(), "given_name": (given_name or "").strip() or None}

        try:
            response = self.client.table(EMPLOYEES_TABLE).insert(row).execute()
            if not response.data:
                raise RemoteStoreError("Insert returned no row")
            employee = Employee.from_row(response.data[0])
        except Exception as e:
            raise self._record_error("add employee", e)

        self.employees.append(employee)
        logger.info(f"Added employee {employee.id} ({employee.display_name})")
        return employee

    def update_employee(self, employee: Employee) -> bool:
        validate_employee_names(employee.name, employee.given_name)
        try:
            (self.client.table(EMPLOYEES_TABLE)
                .update(employee.to_row())
                .eq("id", employee.id)
                .execute())
        except Exception as e:
            self._record_error("update employee", e)
            return False

        self.employees = [employee if emp.id == employee.id else emp for emp in self.employees]
        return True

    def delete_employee(self, employee_id: int) -> bool:
        if self.get_employee_by_id(employee_id) is None:
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        try:
            self.client.table(EMPLOYEES_TABLE).delete().eq("id", employee_id).execute()
        except Exception as e:
            self._record_error("delete employee", e)
            return False

        self.employees = [emp for emp in self.employees if emp.id != employee_id]
        logger.info(f"Deleted employee {employee_id}")
        return True


class DataManager:
    """Owns the remote client and both table caches"""

    def __init__(self, client: Client):
        self.client = client
        self.shift_repository = ShiftRepository(client)
        self.employee_repository = EmployeeRepository(client)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'DataManager':
        client = create_supabase_client(settings)
        refresh_session(client)
        return cls(client)

    @property
    def shifts(self) -> Dict[str, str]:
        return self.shift_repository.shifts

    @property
    def employees(self) -> List[Employee]:
        return self.employee_repository.employees

    @property
    def loading(self) -> bool:
        return self.shift_repository.loading or self.employee_repository.loading

    @property
    def error(self) -> Optional[RemoteStoreError]:
        return self.shift_repository.error or self.employee_repository.error

    def clear_errors(self):
        self.shift_repository.clear_error()
        self.employee_repository.clear_error()

    def load(self) -> bool:
        """Fetch both tables; returns False when either fetch failed"""
        self.employee_repository.fetch_employees()
        self.shift_repository.fetch_shifts()
        return self.error is None

    def delete_employee(self, employee_id: int) -> bool:
        if not self.employee_repository.delete_employee(employee_id):
            return False
        self.shift_repository.drop_employee(employee_id)
        return True

    def create_tables(self) -> bool:
        """Create the remote tables through the ``create_tables`` RPC"""
        logger.info("Creating database tables")
        try:
            for param, statement in SCHEMA_STATEMENTS.items():
                self.client.rpc("create_tables", {param: statement}).execute()
                logger.info(f"Created table for {param}")
            return True
        except Exception as e:
            logger.error(f"Error while creating tables: {e}", exc_info=True)
            return False
