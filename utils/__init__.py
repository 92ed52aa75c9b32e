"""Local Library - helper package

- Form validation and sanitization (validators.py)
- CLI output helpers (ui_helpers.py)
"""
