"""
User Interface for the Shift Roster

CustomTkinter-based GUI with the monthly roster table, a shift code picker
for each cell, the shift type legend and editors, and employee dialogs.
"""

import customtkinter as ctk
from tkinter import colorchooser, filedialog, messagebox
from datetime import date
from typing import Callable, Optional
import threading
import logging

from .data_manager import DataManager, DataValidationError, Employee, RemoteStoreError
from .grid import EMPTY_SHIFT, ShiftGrid
from .reporting import ExportManager
from .shift_types import (
    NEW_SHIFT_TYPE_TEMPLATE, ShiftType, ShiftTypeError, ShiftTypeRegistry,
    edited_hours, parse_hours,
)

logger = logging.getLogger(__name__)


# Configure CustomTkinter
ctk.set_appearance_mode("light")
ctk.set_default_color_theme("blue")

HOUR_VALUES = [str(h) for h in range(24)]


def _center_on_parent(window, parent):
    window.update_idletasks()
    x = parent.winfo_x() + (parent.winfo_width() // 2) - (window.winfo_width() // 2)
    y = parent.winfo_y() + (parent.winfo_height() // 2) - (window.winfo_height() // 2)
    window.geometry(f"+{x}+{y}")


class EmployeeDialog(ctk.CTkToplevel):
    """Dialog for adding/editing employees"""

    def __init__(self, parent, employee: Optional[Employee] = None,
                 callback: Callable = None, on_delete: Callable = None):
        super().__init__(parent)
        self.employee = employee
        self.callback = callback
        self.on_delete = on_delete

        self.title("新規担当者追加" if employee is None else "担当者編集")
        self.geometry("300x240")
        self.transient(parent)
        self.grab_set()

        self._create_widgets()
        self._populate_fields()
        _center_on_parent(self, parent)

    def _create_widgets(self):
        main_frame = ctk.CTkFrame(self)
        main_frame.pack(fill="both", expand=True, padx=15, pady=15)

        ctk.CTkLabel(main_frame, text="姓").pack(anchor="w", pady=(0, 2))
        self.name_entry = ctk.CTkEntry(main_frame, width=250, placeholder_text="例: 山田")
        self.name_entry.pack(pady=(0, 10))

        ctk.CTkLabel(main_frame, text="名 (省略可)").pack(anchor="w", pady=(0, 2))
        self.given_name_entry = ctk.CTkEntry(main_frame, width=250, placeholder_text="例: 太郎")
        self.given_name_entry.pack(pady=(0, 15))

        button_frame = ctk.CTkFrame(main_frame, fg_color="transparent")
        button_frame.pack(fill="x")

        ctk.CTkButton(
            button_frame,
            text="保存" if self.employee else "追加",
            command=self._save,
            width=70
        ).pack(side="right", padx=(5, 0))

        ctk.CTkButton(
            button_frame,
            text="キャンセル",
            command=self.destroy,
            width=70,
            fg_color="gray"
        ).pack(side="right")

        if self.employee and self.on_delete:
            ctk.CTkButton(
                button_frame,
                text="削除",
                command=self._delete,
                width=50,
                fg_color="#dc3545"
            ).pack(side="left")

    def _populate_fields(self):
        if self.employee:
            self.name_entry.insert(0, self.employee.name)
            if self.employee.given_name:
                self.given_name_entry.insert(0, self.employee.given_name)

    def _save(self):
        name = self.name_entry.get().strip()
        given_name = self.given_name_entry.get().strip() or None
        if not name:
            messagebox.showerror("エラー", "姓を入力してください", parent=self)
            return

        if self.callback:
            if self.employee:
                result = Employee(self.employee.id, name, given_name)
            else:
                result = {"name": name, "given_name": given_name}
            if self.callback(result) is False:
                return

        self.destroy()

    def _delete(self):
        if messagebox.askyesno("担当者の削除",
                               "この担当者とそのシフトを削除してもよろしいですか？",
                               parent=self):
            self.on_delete(self.employee)
            self.destroy()


class ShiftTypeDialog(ctk.CTkToplevel):
    """Editor for a shift type: code, label, color and working hours"""

    def __init__(self, parent, shift_type: ShiftType, is_creating: bool = False,
                 callback: Callable = None, on_delete: Callable = None):
        super().__init__(parent)
        self.shift_type = shift_type
        self.is_creating = is_creating
        self.callback = callback
        self.on_delete = on_delete
        self.color = shift_type.color

        self.title("勤務地追加" if is_creating else "勤務地編集")
        self.geometry("280x300")
        self.transient(parent)
        self.grab_set()

        self._create_widgets()
        _center_on_parent(self, parent)

    def _create_widgets(self):
        main_frame = ctk.CTkFrame(self)
        main_frame.pack(fill="both", expand=True, padx=15, pady=15)

        top_frame = ctk.CTkFrame(main_frame, fg_color="transparent")
        top_frame.pack(fill="x", pady=(0, 8))

        ctk.CTkLabel(top_frame, text="色").grid(row=0, column=0, sticky="w")
        self.color_button = ctk.CTkButton(
            top_frame, text="", width=32, height=32,
            fg_color=self.color, hover_color=self.color,
            command=self._pick_color
        )
        self.color_button.grid(row=1, column=0, padx=(0, 10))

        ctk.CTkLabel(top_frame, text="記号").grid(row=0, column=1, sticky="w")
        self.code_entry = ctk.CTkEntry(top_frame, width=150)
        self.code_entry.grid(row=1, column=1, sticky="we")
        self.code_entry.insert(0, self.shift_type.code)

        ctk.CTkLabel(main_frame, text="勤務地名").pack(anchor="w")
        self.label_entry = ctk.CTkEntry(main_frame, width=230)
        self.label_entry.pack(pady=(0, 8))
        self.label_entry.insert(0, self.shift_type.label)

        ctk.CTkLabel(main_frame, text="勤務時間").pack(anchor="w")
        hours_frame = ctk.CTkFrame(main_frame, fg_color="transparent")
        hours_frame.pack(fill="x", pady=(0, 12))

        start, end = parse_hours(self.shift_type.hours)
        self.start_var = ctk.StringVar(value=str(start))
        self.end_var = ctk.StringVar(value=str(end))
        ctk.CTkOptionMenu(hours_frame, values=HOUR_VALUES, variable=self.start_var,
                          width=80).pack(side="left")
        ctk.CTkLabel(hours_frame, text=" 〜 ").pack(side="left")
        ctk.CTkOptionMenu(hours_frame, values=HOUR_VALUES, variable=self.end_var,
                          width=80).pack(side="left")

        button_frame = ctk.CTkFrame(main_frame, fg_color="transparent")
        button_frame.pack(fill="x")

        ctk.CTkButton(
            button_frame,
            text="追加" if self.is_creating else "保存",
            command=self._save,
            width=60
        ).pack(side="right", padx=(5, 0))

        ctk.CTkButton(
            button_frame,
            text="キャンセル",
            command=self.destroy,
            width=70,
            fg_color="gray"
        ).pack(side="right")

        if not self.is_creating and self.on_delete:
            ctk.CTkButton(
                button_frame,
                text="削除",
                command=self._delete,
                width=50,
                fg_color="#dc3545"
            ).pack(side="left")

    def _pick_color(self):
        _, hex_color = colorchooser.askcolor(color=self.color, parent=self)
        if hex_color:
            self.color = hex_color.upper()
            self.color_button.configure(fg_color=self.color, hover_color=self.color)

    def _save(self):
        try:
            edited = ShiftType(
                code=self.code_entry.get().strip(),
                label=self.label_entry.get().strip(),
                color=self.color,
                hours=edited_hours(self.shift_type.hours,
                                   int(self.start_var.get()), int(self.end_var.get()))
            )
            edited.validate(self.is_creating or edited.label != self.shift_type.label)
        except ShiftTypeError as e:
            messagebox.showerror("入力エラー", str(e), parent=self)
            return

        if self.callback and self.callback(edited) is False:
            return
        self.destroy()

    def _delete(self):
        if messagebox.askyesno("勤務地の削除",
                               "この勤務地を削除してもよろしいですか？\nこの操作は取り消せません。",
                               parent=self):
            self.on_delete(self.shift_type)
            self.destroy()


class ShiftPicker(ctk.CTkToplevel):
    """Popover listing every shift type for one roster cell"""

    def __init__(self, parent, grid: ShiftGrid, employee: Employee, day: date,
                 on_select: Callable, on_clear: Callable):
        super().__init__(parent)
        self.grid_model = grid
        self.employee = employee
        self.day = day
        self.on_select = on_select
        self.on_clear = on_clear

        self.title(f"{employee.display_name} {day.month}/{day.day}")
        self.resizable(False, False)
        self.transient(parent)
        self.bind("<FocusOut>", lambda _event: self.after(100, self._close_if_unfocused))

        self._create_widgets()
        x = parent.winfo_pointerx() - 100
        y = parent.winfo_pointery() + 10
        self.geometry(f"+{x}+{y}")
        self.focus_force()

    def _create_widgets(self):
        frame = ctk.CTkFrame(self)
        frame.pack(fill="both", expand=True, padx=6, pady=6)

        for index, (shift_type, background) in enumerate(self.grid_model.shift_options()):
            ctk.CTkButton(
                frame,
                text=f"{shift_type.code}\n{shift_type.label}",
                width=90,
                height=44,
                fg_color=background,
                hover_color=background,
                text_color=shift_type.color,
                command=lambda code=shift_type.code: self._select(code)
            ).grid(row=index // 2, column=index % 2, padx=2, pady=2)

        ctk.CTkButton(
            frame,
            text="クリア",
            width=184,
            fg_color="gray",
            command=self._clear
        ).grid(row=len(self.grid_model.registry) // 2 + 1, column=0, columnspan=2, pady=(4, 0))

    def _select(self, code: str):
        self.destroy()
        self.on_select(self.employee, self.day, code)

    def _clear(self):
        self.destroy()
        self.on_clear(self.employee, self.day)

    def _close_if_unfocused(self):
        if self.winfo_exists() and self.focus_get() is None:
            self.destroy()


class ShiftLegend(ctk.CTkFrame):
    """Shift type legend; clicking a type opens its editor"""

    def __init__(self, parent, registry: ShiftTypeRegistry, on_changed: Callable):
        super().__init__(parent)
        self.registry = registry
        self.on_changed = on_changed
        self.refresh()

    def refresh(self):
        for widget in self.winfo_children():
            widget.destroy()

        columns = self.registry.legend_columns()
        shift_types = self.registry.shift_types
        for index, shift_type in enumerate(shift_types):
            text = f"{shift_type.code}  {shift_type.label}"
            if shift_type.hours:
                text += f"  {shift_type.hours}"
            ctk.CTkButton(
                self,
                text=text,
                anchor="w",
                fg_color="transparent",
                hover_color="#E5E7EB",
                text_color=shift_type.color,
                command=lambda t=shift_type: self._edit(t)
            ).grid(row=index // columns, column=index % columns, padx=4, pady=1, sticky="we")

        ctk.CTkButton(
            self,
            text="＋ 勤務地を追加",
            width=120,
            command=self._add
        ).grid(row=len(shift_types) // columns + 1, column=0, columnspan=columns, pady=(6, 4))

        for i in range(columns):
            self.columnconfigure(i, weight=1)

    def _add(self):
        ShiftTypeDialog(self.winfo_toplevel(), NEW_SHIFT_TYPE_TEMPLATE,
                        is_creating=True, callback=self._save_new)

    def _edit(self, shift_type: ShiftType):
        ShiftTypeDialog(
            self.winfo_toplevel(), shift_type,
            callback=lambda edited: self._save_existing(shift_type, edited),
            on_delete=self._delete
        )

    def _save_new(self, shift_type: ShiftType):
        try:
            self.registry.add_shift_type(shift_type)
        except ShiftTypeError as e:
            messagebox.showerror("勤務地追加", str(e))
            return False
        self._changed()

    def _save_existing(self, original: ShiftType, edited: ShiftType):
        try:
            self.registry.update_shift_type(edited, original_code=original.code)
        except ShiftTypeError as e:
            messagebox.showerror("勤務地編集", str(e))
            return False
        self._changed()

    def _delete(self, shift_type: ShiftType):
        try:
            self.registry.delete_shift_type(shift_type)
        except ShiftTypeError as e:
            messagebox.showerror("勤務地の削除", str(e))
            return
        self._changed()

    def _changed(self):
        self.refresh()
        self.on_changed()


class RosterTable(ctk.CTkScrollableFrame):
    """Employee x day table of shift codes"""

    def __init__(self, parent, grid: ShiftGrid, on_cell_click: Callable,
                 on_employee_click: Callable):
        super().__init__(parent, orientation="horizontal")
        self.grid_model = grid
        self.on_cell_click = on_cell_click
        self.on_employee_click = on_employee_click

    def refresh(self):
        for widget in self.winfo_children():
            widget.destroy()

        ctk.CTkLabel(self, text="担当", width=60,
                     font=ctk.CTkFont(weight="bold")).grid(row=0, column=0, padx=1, pady=1)

        for col, header in enumerate(self.grid_model.header(), start=1):
            text = f"{header.day_label}\n({header.weekday_label})"
            if header.holiday_name:
                text += f"\n{header.holiday_name[:4]}"
            ctk.CTkLabel(
                self,
                text=text,
                width=36,
                text_color=header.text_color or "black",
                font=ctk.CTkFont(size=11)
            ).grid(row=0, column=col, padx=1, pady=1)

        loading = self.grid_model.shifts_loading
        for row_index, row in enumerate(self.grid_model.rows(), start=1):
            odd = row.row_type == "odd"
            ctk.CTkButton(
                self,
                text=row.employee.display_name,
                width=60,
                height=34,
                fg_color="black" if odd else "white",
                text_color="white" if odd else "black",
                border_width=1,
                hover_color="#374151" if odd else "#E5E7EB",
                command=lambda e=row.employee: self.on_employee_click(e)
            ).grid(row=row_index, column=0, padx=1, pady=1)

            for col, cell in enumerate(row.cells, start=1):
                ctk.CTkButton(
                    self,
                    text="" if loading else cell.value,
                    width=36,
                    height=34,
                    corner_radius=0,
                    fg_color=cell.style.background,
                    hover_color=cell.style.background,
                    text_color=cell.style.foreground or "#9CA3AF",
                    font=ctk.CTkFont(size=14, weight="bold"),
                    state="disabled" if loading else "normal",
                    command=lambda e=row.employee, d=cell.date: self.on_cell_click(e, d)
                ).grid(row=row_index, column=col, padx=0, pady=0)


class MainWindow(ctk.CTk):
    """Main application window"""

    def __init__(self, data_manager: DataManager, registry: ShiftTypeRegistry,
                 start_date: Optional[date] = None):
        super().__init__()

        self.title("シフト表")
        self.geometry("1400x800")

        self.data_manager = data_manager
        self.registry = registry
        self.grid_model = ShiftGrid(data_manager, registry, start_date)
        self.export_manager = ExportManager(self.grid_model)

        self._create_widgets()
        self._load_initial_data()

    def _create_widgets(self):
        # Header: month navigation and exports
        header_frame = ctk.CTkFrame(self, fg_color="transparent")
        header_frame.pack(fill="x", padx=10, pady=(10, 0))

        ctk.CTkButton(header_frame, text="<", width=32,
                      command=self._prev_month).pack(side="left", padx=(0, 5))
        self.title_label = ctk.CTkLabel(
            header_frame,
            text=self.grid_model.title,
            font=ctk.CTkFont(size=20, weight="bold")
        )
        self.title_label.pack(side="left", padx=5)
        ctk.CTkButton(header_frame, text=">", width=32,
                      command=self._next_month).pack(side="left", padx=5)

        ctk.CTkButton(
            header_frame,
            text="PDFで共有",
            command=self._export_pdf,
            fg_color="#DC2626",
            width=110
        ).pack(side="right", padx=5)
        ctk.CTkButton(
            header_frame,
            text="Excel/CSV",
            command=self._export_table,
            width=100
        ).pack(side="right", padx=5)

        self.legend = ShiftLegend(self, self.registry, on_changed=self._refresh_table)
        self.legend.pack(fill="x", padx=10, pady=10)

        # Content: loading/error message or the table
        self.content_frame = ctk.CTkFrame(self)
        self.content_frame.pack(fill="both", expand=True, padx=10)

        self.message_label = ctk.CTkLabel(self.content_frame, text="", font=ctk.CTkFont(size=14))
        self.reload_button = ctk.CTkButton(self.content_frame, text="再読み込み",
                                           command=self._load_initial_data)
        self.table = RosterTable(self.content_frame, self.grid_model,
                                 on_cell_click=self._open_picker,
                                 on_employee_click=self._edit_employee)

        action_frame = ctk.CTkFrame(self, fg_color="transparent")
        action_frame.pack(pady=10)
        ctk.CTkButton(action_frame, text="新しい従業員を追加",
                      command=self._add_employee).pack(side="left", padx=10)
        ctk.CTkButton(action_frame, text="すべてのシフトを削除",
                      fg_color="#EF4444", hover_color="#DC2626",
                      command=self._delete_all_shifts).pack(side="left", padx=10)

        # Status bar
        self.status_var = ctk.StringVar(value="Ready")
        ctk.CTkLabel(self, textvariable=self.status_var).pack(side="bottom", fill="x", padx=10, pady=5)

    def _show_message(self, text: str, with_reload: bool = False):
        self.table.pack_forget()
        self.message_label.configure(text=text)
        self.message_label.pack(pady=(40, 10))
        if with_reload:
            self.reload_button.pack()
        else:
            self.reload_button.pack_forget()

    def _show_table(self):
        self.message_label.pack_forget()
        self.reload_button.pack_forget()
        self.table.pack(fill="both", expand=True)
        self.table.refresh()

    def _load_initial_data(self):
        """Fetch employees and shifts in the background"""
        self.data_manager.clear_errors()
        self._show_message("従業員データを読み込み中...")
        self.status_var.set("Loading...")

        def load():
            try:
                self.data_manager.load()
            except Exception as e:
                logger.error(f"Error loading roster data: {e}", exc_info=True)
            self.after(0, self._update_after_load)

        threading.Thread(target=load, daemon=True).start()

    def _update_after_load(self):
        self._refresh_table()
        if not self.grid_model.error_message:
            self.status_var.set("Data loaded successfully")

    def _refresh_table(self):
        self.title_label.configure(text=self.grid_model.title)
        if self.grid_model.loading:
            self._show_message("従業員データを読み込み中...")
            return
        error = self.grid_model.error_message
        if error:
            self._show_message(f"エラーが発生しました\n{error}", with_reload=True)
            self.status_var.set("Error")
            return
        self._show_table()

    def _prev_month(self):
        self.grid_model.prev_month()
        self._refresh_table()

    def _next_month(self):
        self.grid_model.next_month()
        self._refresh_table()

    def _open_picker(self, employee: Employee, day: date):
        ShiftPicker(self, self.grid_model, employee, day,
                    on_select=self._change_shift, on_clear=self._clear_shift)

    def _change_shift(self, employee: Employee, day: date, code: str):
        if not self.grid_model.change_shift(employee.id, day, code):
            self.status_var.set("シフトの更新に失敗しました")
        self._refresh_table()

    def _clear_shift(self, employee: Employee, day: date):
        if self.grid_model.get_shift_value(employee.id, day) == EMPTY_SHIFT:
            return
        if not self.grid_model.clear_shift(employee.id, day):
            self.status_var.set("シフトの削除に失敗しました")
        self._refresh_table()

    def _add_employee(self):
        EmployeeDialog(self, callback=self._save_new_employee)

    def _save_new_employee(self, values) -> bool:
        try:
            employee = self.grid_model.add_employee(values["name"], values["given_name"])
        except DataValidationError as e:
            messagebox.showerror("入力エラー", str(e))
            return False
        except RemoteStoreError as e:
            messagebox.showerror("エラー", str(e))
            self.data_manager.employee_repository.clear_error()
            return False
        self.status_var.set(f"{employee.display_name} を追加しました")
        self._refresh_table()
        return True

    def _edit_employee(self, employee: Employee):
        EmployeeDialog(self, employee, callback=self._save_employee,
                       on_delete=self._delete_employee)

    def _save_employee(self, employee: Employee) -> bool:
        try:
            updated = self.grid_model.update_employee(employee)
        except DataValidationError as e:
            messagebox.showerror("入力エラー", str(e))
            return False
        if not updated:
            self.status_var.set("担当者の更新に失敗しました")
        self._refresh_table()
        return True

    def _delete_employee(self, employee: Employee):
        if self.data_manager.employee_repository.get_employee_by_id(employee.id) is None:
            messagebox.showinfo("担当者の削除", "この担当者はまだ保存されていません")
            return
        if not self.grid_model.delete_employee(employee.id):
            self.status_var.set("担当者の削除に失敗しました")
        self._refresh_table()

    def _delete_all_shifts(self):
        confirmed = messagebox.askyesno(
            "シフトデータを削除",
            "この操作はすべてのシフトデータを削除します。この操作は元に戻せません。"
        )
        if not confirmed:
            return
        self.status_var.set("Deleting shifts...")

        def delete():
            self.grid_model.delete_all_shifts()
            self.after(0, self._refresh_table)

        threading.Thread(target=delete, daemon=True).start()

    def _export_pdf(self):
        output_path = filedialog.asksaveasfilename(
            initialfile=self.export_manager.get_default_filename("pdf"),
            defaultextension=".pdf",
            filetypes=[("PDF files", "*.pdf")],
            title="PDFで共有"
        )
        if output_path:
            self._export("pdf", output_path)

    def _export_table(self):
        output_path = filedialog.asksaveasfilename(
            initialfile=self.export_manager.get_default_filename("excel"),
            defaultextension=".xlsx",
            filetypes=[("Excel files", "*.xlsx"), ("CSV files", "*.csv")],
            title="Export Roster"
        )
        if output_path:
            format_type = "csv" if output_path.lower().endswith(".csv") else "excel"
            self._export(format_type, output_path)

    def _export(self, format_type: str, output_path: str):
        if self.export_manager.export_calendar(format_type, output_path):
            messagebox.showinfo("Export Successful", f"Roster exported successfully to:\n{output_path}")
        else:
            messagebox.showerror("Export Failed", "Failed to export roster. Please check the file path and try again.")
