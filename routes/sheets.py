"""
Google Sheets Routes

Worksheet listing and data fetch for the import screen.
"""

import logging

from flask import Blueprint, current_app, jsonify, session

from services.google_auth import credentials_from_session
from services.sheets_service import (
    AuthenticationRequired,
    SheetsError,
    build_sheets_client,
    describe_fetch,
    fetch_values,
    list_worksheets,
)

logger = logging.getLogger(__name__)

sheets_bp = Blueprint('sheets', __name__, url_prefix='/api/sheets')


def _client():
    credentials = credentials_from_session(session, current_app.config)
    if credentials is None:
        raise AuthenticationRequired('Please sign in with Google first')
    return build_sheets_client(credentials)


@sheets_bp.errorhandler(SheetsError)
def handle_sheets_error(e):
    return jsonify({'error': e.error, 'message': str(e)}), e.status_code


@sheets_bp.route('/<spreadsheet_id>/worksheets')
def worksheets(spreadsheet_id):
    """List the worksheets of a spreadsheet with their grid sizes."""
    sheets = list_worksheets(_client(), spreadsheet_id)
    return jsonify([
        {
            'title': sheet['title'],
            'gridProperties': {
                'rowCount': sheet['rowCount'],
                'columnCount': sheet['columnCount'],
            },
        }
        for sheet in sheets
    ])


@sheets_bp.route('/<spreadsheet_id>/worksheets/<path:worksheet_name>/data')
def worksheet_data(spreadsheet_id, worksheet_name):
    """Fetch a worksheet's cells in the row shape the import endpoints accept."""
    cell_range = current_app.config.get('SHEET_FETCH_RANGE', 'A1:Z1000')
    data = fetch_values(_client(), spreadsheet_id, worksheet_name, cell_range)
    logger.info(f"Fetched {len(data)} rows from {spreadsheet_id} / {worksheet_name}")
    return jsonify({'data': data, 'metadata': describe_fetch(data, cell_range)})
