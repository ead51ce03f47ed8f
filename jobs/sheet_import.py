# jobs/sheet_import.py
"""
Sheet Import Job

Imports rows of a worksheet into the central database without the web UI,
authenticating with a service account that has read access to the sheet.

Usage:
    python jobs/sheet_import.py --spreadsheet <url or id> --worksheet Leads \\
        --mapping mapping.json --rows 2-40 --credentials service_account.json

The mapping file holds the same object the insert endpoint accepts as
columnMapping. Row numbers are the ones shown in Google Sheets (1-based).
The JSON report is printed to stdout; the exit code is 1 when the import
did not complete.
"""

import os
import sys
import json
import logging
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logger = logging.getLogger(__name__)


def parse_row_range(value):
    """
    Parse a row selection such as "2-40" or "2,5,9-12".

    Returns:
        Sorted list of 1-based sheet row numbers

    Raises:
        argparse.ArgumentTypeError: on malformed or reversed ranges
    """
    rows = set()
    for part in value.split(','):
        part = part.strip()
        if not part:
            continue
        start, sep, end = part.partition('-')
        if not start.strip().isdigit() or (sep and not end.strip().isdigit()):
            raise argparse.ArgumentTypeError(f"Invalid row range: {part!r}")
        first = int(start)
        last = int(end) if sep else first
        if first < 1 or last < first:
            raise argparse.ArgumentTypeError(f"Invalid row range: {part!r}")
        rows.update(range(first, last + 1))
    if not rows:
        raise argparse.ArgumentTypeError("Row range is empty")
    return sorted(rows)


def select_rows(raw_rows, row_numbers=None, skip_header=False):
    """Keep the rows whose 1-based sheet number is selected."""
    wanted = set(row_numbers) if row_numbers else None
    selected = []
    for row in raw_rows:
        if skip_header and row.row_index == 0:
            continue
        if wanted is not None and row.row_index + 1 not in wanted:
            continue
        selected.append(row)
    return selected


def build_parser():
    parser = argparse.ArgumentParser(description='Import Google Sheets rows into the central database.')
    parser.add_argument('--spreadsheet', required=True, help='Spreadsheet URL or id')
    parser.add_argument('--worksheet', required=True, help='Worksheet (tab) name')
    parser.add_argument('--mapping', required=True, help='Path to the column mapping JSON file')
    parser.add_argument('--rows', type=parse_row_range, help='Sheet rows to import, e.g. 2-40')
    parser.add_argument('--credentials', default=os.getenv('GOOGLE_APPLICATION_CREDENTIALS'),
                        help='Service account key file')
    parser.add_argument('--skip-header', action='store_true', help='Never import the first sheet row')
    parser.add_argument('--environment', help='Override ENV (DEV obfuscates contact details)')
    return parser


def load_mapping(path, default_post_it_columns=()):
    from services.importer import ColumnMapping

    with open(path) as f:
        return ColumnMapping.from_payload(json.load(f), default_post_it_columns=default_post_it_columns)


def import_sheet(args, app):
    """
    Fetch the worksheet and run the import inside the app context.

    Returns:
        ImportReport
    """
    from google.oauth2 import service_account

    from config import require_import_settings
    from models import db
    from services.importer import central_today, run_import
    from services.sheets_service import (
        SHEETS_SCOPES,
        build_sheets_client,
        extract_spreadsheet_id,
        fetch_rows,
    )

    spreadsheet_id = extract_spreadsheet_id(args.spreadsheet)
    if not spreadsheet_id:
        raise ValueError(f"Cannot read a spreadsheet id from {args.spreadsheet!r}")
    if not args.credentials:
        raise ValueError("No service account credentials given (--credentials or GOOGLE_APPLICATION_CREDENTIALS)")

    config = app.config
    branch, system_user_id = require_import_settings(config)
    mapping = load_mapping(args.mapping, config.get('DEFAULT_POSTIT_COLUMNS', ()))

    credentials = service_account.Credentials.from_service_account_file(
        args.credentials, scopes=SHEETS_SCOPES
    )
    client = build_sheets_client(credentials)
    rows = fetch_rows(client, spreadsheet_id, args.worksheet,
                      config.get('SHEET_FETCH_RANGE', 'A1:Z1000'))
    rows = select_rows(rows, args.rows, args.skip_header)
    logger.info(f"Importing {len(rows)} rows from {spreadsheet_id} / {args.worksheet}")

    environment = (args.environment or config.get('ENV') or 'PROD').upper()
    return run_import(db.session, rows, mapping, branch, system_user_id,
                      environment=environment,
                      today=central_today(config.get('CENTRAL_TIMEZONE', 'UTC')))


def main(argv=None):
    """Entry point for cron or manual runs - creates app context and runs the import."""
    from app import create_app

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = build_parser().parse_args(argv)
    app = create_app()
    with app.app_context():
        report = import_sheet(args, app)

    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 0 if report.success else 1


if __name__ == '__main__':
    sys.exit(main())
