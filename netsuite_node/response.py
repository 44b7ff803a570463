"""
response.py

Turn a ResponseEnvelope into a node output item ({"json": ...}) or an error.

Success (200..399):
- GET bodies pass through
- POST / PATCH / DELETE bodies are enriched from response headers
  (property validation, operation / job ids, Location -> links + id)

Failure:
- message from title, message, o:errorCode, status text; o:errorDetails[0].detail wins
- 401s get a diagnostic message built from the WWW-Authenticate header
- raise NetSuiteApiError, or return {"json": {"error": message}} when continuing on failure
"""

import re
from typing import Any, Dict, Optional, Tuple

from .errors import NetSuiteApiError, NetSuiteAuthError
from .log import get_logger
from .models import ResponseEnvelope, parse_error_body

logger = get_logger(__name__)

_MUTATING_METHODS = ("POST", "PATCH", "DELETE")
_AUTH_ERROR_RE = re.compile(r'error="([^"]+)"')
_AUTH_ERROR_DESC_RE = re.compile(r'error_description="([^"]+)"')


def error_message(envelope: ResponseEnvelope) -> str:
    error = parse_error_body(envelope.body)
    message = error.title or error.message or error.error_code or envelope.status_text
    if error.error_details and error.error_details[0].detail:
        message = error.error_details[0].detail
    return message or f"Request failed with status code {envelope.status_code}"


def parse_www_authenticate(header: Optional[str]) -> Tuple[str, str]:
    if not header:
        return "", ""
    error = _AUTH_ERROR_RE.search(header)
    description = _AUTH_ERROR_DESC_RE.search(header)
    return (error.group(1) if error else "", description.group(1) if description else "")


def authentication_failed_message(envelope: ResponseEnvelope, original: str, account_id: Optional[str] = None) -> str:
    auth_error, auth_error_desc = parse_www_authenticate(envelope.header("www-authenticate"))

    url = envelope.url
    if account_id:
        host = account_id.lower().replace("_", "-")
        account_in_url = account_id in url or host in url
    else:
        account_in_url = "accountId=" in url

    logger.warning(
        "NetSuite authentication failed: status=%s auth_error=%s auth_error_desc=%s url=%s",
        envelope.status_code, auth_error, auth_error_desc, url,
    )

    return (
        f"Authentication failed (401 Unauthorized): {auth_error_desc or 'Invalid credentials'}.\n"
        f"Error type: {auth_error or 'Unknown'}.\n"
        "Please verify:\n"
        "1. Your NetSuite hostname format (should be 'suitetalk.api.netsuite.com' without protocol)\n"
        f"2. Your account ID is correct ({'included in URL' if account_in_url else 'not found in URL'})\n"
        "3. Your OAuth tokens have proper permissions in NetSuite\n"
        "4. Your integration record in NetSuite is properly configured\n"
        "\n"
        f"Original error: {original}"
    )


def _enrich_from_headers(envelope: ResponseEnvelope) -> Dict[str, Any]:
    body = dict(envelope.body) if isinstance(envelope.body, dict) else {}

    property_validation = envelope.header("x-netsuite-propertyvalidation")
    if property_validation:
        body["propertyValidation"] = property_validation.split(",")

    operation_id = envelope.header("x-n-operationid")
    if operation_id:
        body["operationId"] = operation_id

    job_id = envelope.header("x-netsuite-jobid")
    if job_id:
        body["jobId"] = job_id

    location = envelope.header("location")
    if location:
        body["links"] = [{"rel": "self", "href": location}]
        body["id"] = location.rstrip("/").split("/")[-1]

    body["success"] = envelope.status_code == 204
    return body


def handle_netsuite_response(
    envelope: ResponseEnvelope,
    continue_on_fail: bool = False,
    account_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Normalize one response. Pure function of (envelope, continue_on_fail):
    the envelope is never modified.
    """
    logger.debug("Netsuite response: %s %s", envelope.status_code, envelope.body)

    if envelope.ok:
        if envelope.method in _MUTATING_METHODS:
            return {"json": _enrich_from_headers(envelope)}
        return {"json": envelope.body}

    message = error_message(envelope)
    if envelope.status_code == 401:
        message = authentication_failed_message(envelope, message, account_id)

    if not continue_on_fail:
        body = envelope.body if isinstance(envelope.body, dict) else {}
        error_cls = NetSuiteAuthError if envelope.status_code == 401 else NetSuiteApiError
        raise error_cls(message, body=body, status_code=envelope.status_code)

    return {"json": {"error": message}}
