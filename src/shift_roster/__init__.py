"""
Shift Roster

A desktop roster grid for assigning daily work-site codes to employees
across a month, backed by a remote Supabase store, with PDF export.
"""

__version__ = "1.0.0"
__author__ = "Shift Roster Team"
