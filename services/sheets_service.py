"""
Google Sheets Service

Reads worksheet metadata and cell values with the Sheets v4 API.
Rows come back in the same shape the browser posts to the import
endpoints: {"values": [{"formattedValue": "..."}]}.

Usage:
    from services.sheets_service import build_sheets_client, list_worksheets, fetch_rows

    client = build_sheets_client(credentials)
    worksheets = list_worksheets(client, spreadsheet_id)
    rows = fetch_rows(client, spreadsheet_id, 'Leads')
"""

import logging
import re
from typing import Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from services.importer.types import RawRow

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets.readonly']

DEFAULT_RANGE = 'A1:Z1000'

_SPREADSHEET_URL = re.compile(r'/spreadsheets/d/([a-zA-Z0-9-_]+)')


class SheetsError(Exception):
    """Base error for Sheets access problems."""
    status_code = 500
    error = 'Failed to fetch worksheet data'


class AuthenticationRequired(SheetsError):
    status_code = 401
    error = 'Authentication required'


class SheetAccessDenied(SheetsError):
    status_code = 403
    error = 'Access denied'


class SheetNotFound(SheetsError):
    status_code = 404
    error = 'Spreadsheet not found'


class SheetTooLarge(SheetsError):
    status_code = 413
    error = 'Data too large'


def extract_spreadsheet_id(url_or_id: str) -> Optional[str]:
    """
    Pull the spreadsheet id out of a Google Sheets URL.

    A bare id is returned unchanged.
    """
    if not url_or_id:
        return None
    match = _SPREADSHEET_URL.search(url_or_id)
    if match:
        return match.group(1)
    if '/' in url_or_id:
        return None
    return url_or_id.strip()


def build_sheets_client(credentials):
    """Build a Sheets v4 API client for the given google-auth credentials."""
    return build('sheets', 'v4', credentials=credentials, cache_discovery=False)


def _translate_http_error(e: HttpError, subject: str) -> SheetsError:
    status = getattr(e.resp, 'status', None)
    status = int(status) if status is not None else None
    message = str(e)

    if status == 403:
        return SheetAccessDenied(f'You do not have permission to access this {subject}')
    if status == 404:
        return SheetNotFound(f'The {subject} is invalid or does not exist')
    if 'exceeds grid limits' in message:
        return SheetTooLarge(
            'This worksheet contains too much data. Consider splitting large worksheets.'
        )
    return SheetsError(message)


def list_worksheets(client, spreadsheet_id: str) -> List[Dict]:
    """
    List the worksheets of a spreadsheet.

    Returns:
        List of {title, rowCount, columnCount}

    Raises:
        SheetsError subclasses for 403 / 404 / other API failures
    """
    try:
        response = client.spreadsheets().get(spreadsheetId=spreadsheet_id).execute()
    except HttpError as e:
        logger.warning(f"Listing worksheets failed for {spreadsheet_id}: {e}")
        raise _translate_http_error(e, 'spreadsheet') from e

    worksheets = []
    for sheet in response.get('sheets', []):
        properties = sheet.get('properties', {})
        grid = properties.get('gridProperties', {})
        worksheets.append({
            'title': properties.get('title', ''),
            'rowCount': grid.get('rowCount', 0),
            'columnCount': grid.get('columnCount', 0),
        })
    return worksheets


def fetch_values(client, spreadsheet_id: str, worksheet_name: str,
                 cell_range: str = DEFAULT_RANGE) -> List[Dict]:
    """
    Fetch a worksheet's formatted cell values.

    Returns:
        List of {"values": [{"formattedValue": str}]} in sheet order
    """
    sheet_range = f"'{worksheet_name}'!{cell_range}"
    try:
        response = client.spreadsheets().values().get(
            spreadsheetId=spreadsheet_id,
            range=sheet_range,
        ).execute()
    except HttpError as e:
        logger.warning(f"Fetching {sheet_range} failed for {spreadsheet_id}: {e}")
        raise _translate_http_error(e, 'worksheet') from e

    return [
        {'values': [{'formattedValue': '' if cell is None else str(cell)} for cell in row]}
        for row in response.get('values', [])
    ]


def fetch_rows(client, spreadsheet_id: str, worksheet_name: str,
               cell_range: str = DEFAULT_RANGE) -> List[RawRow]:
    """Fetch a worksheet as RawRows indexed from zero."""
    data = fetch_values(client, spreadsheet_id, worksheet_name, cell_range)
    return [
        RawRow.from_payload({'rowIndex': index, 'data': row})
        for index, row in enumerate(data)
    ]


def describe_fetch(data: List[Dict], cell_range: str = DEFAULT_RANGE) -> Dict:
    """Metadata returned alongside worksheet data."""
    rows = len(data)
    columns = max((len(row['values']) for row in data), default=0)
    max_rows, max_columns = _range_size(cell_range)

    if (max_rows and rows >= max_rows) or (max_columns and columns >= max_columns):
        note = f'Showing the first {max_rows} rows and {max_columns} columns of this worksheet.'
    else:
        note = 'All data loaded successfully'

    return {
        'totalRows': rows,
        'totalColumns': columns,
        'fetchedRows': rows,
        'fetchedColumns': columns,
        'note': note,
    }


def _column_number(letters: str) -> int:
    number = 0
    for letter in letters.upper():
        number = number * 26 + (ord(letter) - ord('A') + 1)
    return number


def _range_size(cell_range: str):
    """Rows and columns covered by an A1 range such as 'A1:Z1000'."""
    match = re.fullmatch(r'([A-Za-z]+)(\d+):([A-Za-z]+)(\d+)', cell_range or '')
    if not match:
        return None, None
    start_col, start_row, end_col, end_row = match.groups()
    rows = int(end_row) - int(start_row) + 1
    columns = _column_number(end_col) - _column_number(start_col) + 1
    return rows, columns
