"""
Google Sign-in Routes

OAuth flow granting read-only Sheets access. Tokens are kept in the
session and used by the sheets blueprint.
"""

import logging
import secrets

from flask import Blueprint, current_app, jsonify, redirect, request, session

from services.google_auth import (
    SESSION_ACCESS_TOKEN,
    SESSION_REFRESH_TOKEN,
    SESSION_STATE,
    exchange_code_for_tokens,
    get_oauth_url,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/google')
def google_login():
    """
    Start the OAuth flow.
    Redirects the operator to Google's consent screen.
    """
    try:
        state = secrets.token_urlsafe(32)
        session[SESSION_STATE] = state
        auth_url = get_oauth_url(state, current_app.config)
    except ValueError as e:
        logger.error(f"Google OAuth configuration error: {e}")
        return jsonify({
            'error': 'OAuth not configured',
            'message': str(e),
            'suggestion': 'Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET in your .env file.'
        }), 500

    logger.info("Initiating Google OAuth")
    return redirect(auth_url)


@auth_bp.route('/callback')
def callback():
    """Exchange the authorization code and keep the tokens in the session."""
    state = request.args.get('state')
    stored_state = session.pop(SESSION_STATE, None)
    if not state or state != stored_state:
        logger.warning("Invalid OAuth state")
        return redirect('/?error=invalid_state')

    error = request.args.get('error')
    if error:
        logger.warning(f"OAuth error from Google: {error}")
        return redirect(f'/?error={error}')

    code = request.args.get('code')
    if not code:
        return redirect('/?error=no_code')

    try:
        tokens = exchange_code_for_tokens(code, current_app.config)
    except Exception as e:
        logger.error(f"OAuth token exchange failed: {e}")
        return redirect('/?error=auth_failed')

    session[SESSION_ACCESS_TOKEN] = tokens['access_token']
    if tokens.get('refresh_token'):
        session[SESSION_REFRESH_TOKEN] = tokens['refresh_token']

    logger.info("Google account connected")
    return redirect('/?authenticated=true')


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.pop(SESSION_ACCESS_TOKEN, None)
    session.pop(SESSION_REFRESH_TOKEN, None)
    return jsonify({'success': True})
