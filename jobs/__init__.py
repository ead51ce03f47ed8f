# jobs package
from .sheet_import import parse_row_range, select_rows

__all__ = [
    'parse_row_range',
    'select_rows'
]
