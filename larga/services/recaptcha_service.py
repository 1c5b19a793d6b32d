"""
Google reCAPTCHA token verification.
"""
import logging
from typing import Optional

import requests


def verify_recaptcha(
    token: str,
    secret_key: str,
    verify_url: str,
    timeout: float = 10.0,
    remote_ip: Optional[str] = None,
) -> dict:
    """
    Ask Google's siteverify endpoint whether ``token`` is valid.

    Network failures and unparsable replies are reported as ``{'success': False}``;
    this function never raises for transport problems.
    """
    if not secret_key:
        return {'success': False, 'error': 'RECAPTCHA_SECRET_KEY not configured'}

    form = {'secret': secret_key, 'response': token}
    if remote_ip:
        form['remoteip'] = remote_ip

    try:
        response = requests.post(verify_url, data=form, timeout=timeout)
    except requests.RequestException as e:
        logging.error(f"[reCAPTCHA] HTTPS request error: {e}")
        return {'success': False}

    try:
        result = response.json()
    except ValueError as e:
        logging.error(f"[reCAPTCHA] Failed to parse response: {e}")
        return {'success': False}

    if not isinstance(result, dict):
        logging.error("[reCAPTCHA] Unexpected response shape")
        return {'success': False}
    return result


def summarize_result(result: dict) -> dict:
    """Shape a siteverify reply into the public API body."""
    return {
        'success': bool(result.get('success')),
        'score': result.get('score'),
        'action': result.get('action'),
        'errorCodes': result.get('error-codes') or result.get('errorCodes') or None,
    }
