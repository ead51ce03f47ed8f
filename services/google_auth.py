"""
Google OAuth Service

Consent URL and code exchange for read-only Sheets access.
Tokens live in the signed Flask session only; nothing is persisted.

Usage:
    from services.google_auth import get_oauth_url, exchange_code_for_tokens, credentials_from_session
"""

import logging
from typing import Dict, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from config import Config

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets.readonly',
    'https://www.googleapis.com/auth/userinfo.email',
]

TOKEN_URI = 'https://oauth2.googleapis.com/token'

SESSION_ACCESS_TOKEN = 'google_access_token'
SESSION_REFRESH_TOKEN = 'google_refresh_token'
SESSION_STATE = 'google_oauth_state'


def _build_flow(config=Config) -> Flow:
    client_id = _setting(config, 'GOOGLE_CLIENT_ID')
    client_secret = _setting(config, 'GOOGLE_CLIENT_SECRET')
    redirect_uri = _setting(config, 'GOOGLE_REDIRECT_URI')
    if not client_id or not client_secret:
        raise ValueError("Google OAuth credentials not configured")

    flow = Flow.from_client_config(
        {
            "web": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": TOKEN_URI,
                "redirect_uris": [redirect_uri]
            }
        },
        scopes=GOOGLE_SCOPES
    )
    flow.redirect_uri = redirect_uri
    return flow


def _setting(config, name):
    if isinstance(config, dict) or hasattr(config, 'get'):
        return config.get(name)
    return getattr(config, name, None)


def get_oauth_url(state: str, config=Config) -> str:
    """
    Generate the Google consent URL.

    Args:
        state: CSRF state token (store in session for verification)
        config: Flask config mapping or Config class

    Returns:
        Authorization URL to redirect the operator to
    """
    flow = _build_flow(config)
    auth_url, _ = flow.authorization_url(
        state=state,
        access_type='offline',
        include_granted_scopes='true',
        prompt='consent'
    )
    return auth_url


def exchange_code_for_tokens(code: str, config=Config) -> Dict:
    """
    Exchange an authorization code for tokens.

    Returns:
        Dict with keys: access_token, refresh_token
    """
    flow = _build_flow(config)
    flow.fetch_token(code=code)
    credentials = flow.credentials
    return {
        'access_token': credentials.token,
        'refresh_token': credentials.refresh_token,
    }


def credentials_from_session(session, config=Config) -> Optional[Credentials]:
    """Build credentials from the tokens kept in the Flask session, or None."""
    access_token = session.get(SESSION_ACCESS_TOKEN)
    if not access_token:
        return None
    return Credentials(
        token=access_token,
        refresh_token=session.get(SESSION_REFRESH_TOKEN),
        token_uri=TOKEN_URI,
        client_id=_setting(config, 'GOOGLE_CLIENT_ID'),
        client_secret=_setting(config, 'GOOGLE_CLIENT_SECRET'),
        scopes=GOOGLE_SCOPES
    )
