"""
Reports - read-only finance aggregates and CSV export
"""
