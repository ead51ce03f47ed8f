"""
Central Database Import Routes

JSON endpoints behind the sheet import screen:
- test-connection: configuration check plus a round-trip
- check-lead-sources: lead-source validation only
- check-duplicates: duplicate detection only
- insert-data: the full import
"""

import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import missing_database_settings, parse_branch, require_import_settings
from models import db
from services.importer import (
    IMPORTED_TABLES,
    ColumnMapping,
    ConfigurationError,
    ImportStage,
    InvalidRequestError,
    RawRow,
    central_today,
    check_duplicates,
    extract_records,
    run_import,
    validate_lead_sources,
)
from services.sheets_service import extract_spreadsheet_id

logger = logging.getLogger(__name__)

imports_bp = Blueprint('imports', __name__, url_prefix='/api/database')

CONNECTION_SUGGESTION = 'Please check your database connection and try again.'


def _parse_selection(body, require_sheet=False):
    """
    Validate the request body and build rows and mapping.

    Raises:
        InvalidRequestError: when required fields are missing or malformed
    """
    if not isinstance(body, dict):
        raise InvalidRequestError('Request body must be a JSON object')

    selected_rows = body.get('selectedRows')
    column_mapping = body.get('columnMapping')
    required = 'selectedRows or columnMapping'
    if require_sheet:
        required = 'spreadsheetId, worksheetName, selectedRows, or columnMapping'
        if not body.get('spreadsheetId') or not body.get('worksheetName'):
            raise InvalidRequestError(f'Missing required fields: {required}')
    if not isinstance(selected_rows, list) or not column_mapping:
        raise InvalidRequestError(f'Missing required fields: {required}')

    mapping = ColumnMapping.from_payload(
        column_mapping,
        default_post_it_columns=current_app.config.get('DEFAULT_POSTIT_COLUMNS', ())
    )
    rows = [RawRow.from_payload(row) for row in selected_rows]
    return rows, mapping


def _import_settings(body):
    """Branch, system user and environment, request values overriding config."""
    config = current_app.config
    branch, system_user_id = require_import_settings(config)
    # Blank request values fall back to the configured ones.
    requested_branch = parse_branch(body.get('branch'))
    requested_user = str(body.get('systemUserId') or '').strip()
    return (
        branch if requested_branch is None else requested_branch,
        requested_user or system_user_id,
        (body.get('environment') or config.get('ENV') or 'PROD').upper(),
    )


def _today():
    return central_today(current_app.config.get('CENTRAL_TIMEZONE', 'UTC'))


def _invalid_request(e):
    return jsonify({'error': 'Invalid request data', 'message': str(e)}), 400


def _configuration_error(e):
    logger.error(f"Import configuration incomplete: {e}")
    return jsonify({
        'error': 'Database configuration incomplete',
        'message': str(e),
        'suggestion': 'Please check your .env file and ensure all database variables are set.'
    }), 500


def _public_db_config():
    config = current_app.config
    return {
        'host': config.get('DB_HOST'),
        'port': config.get('DB_PORT'),
        'database': config.get('DB_NAME'),
        'dialect': config.get('DB_DIALECT'),
    }


@imports_bp.route('/test-connection')
def test_connection():
    """Check the database settings and run a trivial query."""
    missing = missing_database_settings(current_app.config)
    if missing:
        return _configuration_error(ConfigurationError(
            f"Missing environment variables: {', '.join(missing)}", missing=missing
        ))

    logger.info(f"Testing database connection: {_public_db_config()}")
    try:
        db.session.execute(text('SELECT 1'))
        db.session.rollback()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database connection test failed: {e}")
        return jsonify({
            'error': 'Database connection failed',
            'message': str(e),
            'suggestion': 'Please check your database configuration and ensure the database server is running.'
        }), 500

    return jsonify({
        'success': True,
        'message': 'Database connection successful',
        'config': _public_db_config(),
        'timestamp': datetime.utcnow().isoformat() + 'Z'
    })


@imports_bp.route('/check-lead-sources', methods=['POST'])
def check_lead_sources():
    """Report which hear_us_from values exist and the SQL to create the rest."""
    body = request.get_json(silent=True)
    try:
        rows, mapping = _parse_selection(body)
        branch, system_user_id, environment = _import_settings(body)
    except InvalidRequestError as e:
        return _invalid_request(e)
    except ConfigurationError as e:
        return _configuration_error(e)

    records = extract_records(rows, mapping, environment, _today())
    try:
        report = validate_lead_sources(db.session, records, branch, system_user_id)
    except SQLAlchemyError as e:
        logger.exception("Lead source check failed")
        return jsonify({
            'error': 'Lead source check failed',
            'message': str(e),
            'suggestion': CONNECTION_SUGGESTION
        }), 500
    finally:
        db.session.rollback()

    if report.total_values == 0:
        return jsonify({
            'success': False,
            'message': 'No hear_us_from values found in selected rows'
        })

    return jsonify({
        'success': True,
        'message': 'Lead source validation completed',
        'data': report.to_dict()
    })


@imports_bp.route('/check-duplicates', methods=['POST'])
def check_duplicates_route():
    """Report which selected rows already exist by email or phone."""
    body = request.get_json(silent=True)
    try:
        rows, mapping = _parse_selection(body)
    except InvalidRequestError as e:
        return _invalid_request(e)

    missing = missing_database_settings(current_app.config)
    if missing:
        return _configuration_error(ConfigurationError(
            f"Missing environment variables: {', '.join(missing)}", missing=missing
        ))

    environment = ((body.get('environment') or current_app.config.get('ENV')) or 'PROD').upper()
    records = extract_records(rows, mapping, environment, _today())
    try:
        report = check_duplicates(db.session, records)
    except SQLAlchemyError as e:
        logger.exception("Duplicate check failed")
        return jsonify({
            'error': 'Duplicate check failed',
            'message': str(e),
            'suggestion': CONNECTION_SUGGESTION
        }), 500
    finally:
        db.session.rollback()

    return jsonify({
        'success': True,
        'totalRows': report.total,
        'duplicateRows': len(report.duplicates),
        'newRows': len(report.new_records),
        'duplicateDetails': [verdict.to_dict() for verdict in report.duplicates],
        'message': f'Found {len(report.duplicates)} duplicate rows out of {report.total} total rows'
    })


@imports_bp.route('/insert-data', methods=['POST'])
def insert_data():
    """Import the selected rows into the central database."""
    body = request.get_json(silent=True)
    try:
        rows, mapping = _parse_selection(body, require_sheet=True)
        branch, system_user_id, environment = _import_settings(body)
    except InvalidRequestError as e:
        return _invalid_request(e)
    except ConfigurationError as e:
        return _configuration_error(e)

    logger.info(
        f"Insert requested: {len(rows)} rows from {body['spreadsheetId']} / {body['worksheetName']}"
    )

    try:
        report = run_import(db.session, rows, mapping, branch, system_user_id,
                            environment=environment, today=_today())
    except Exception as e:
        db.session.rollback()
        logger.exception("Data insertion failed")
        return jsonify({
            'error': 'Data insertion failed',
            'message': str(e) or 'Unknown error occurred during data insertion',
            'suggestion': CONNECTION_SUGGESTION
        }), 500

    payload = report.to_dict()
    payload.update({
        'spreadsheetId': extract_spreadsheet_id(body['spreadsheetId']) or body['spreadsheetId'],
        'worksheetName': body['worksheetName'],
        'tablesInserted': IMPORTED_TABLES,
        'timestamp': datetime.utcnow().isoformat() + 'Z',
    })
    status = 500 if report.stage is ImportStage.FAILED else 200
    return jsonify(payload), status
