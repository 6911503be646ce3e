"""
Authorized entry point for analysis runs.

A run may be started by the scheduler, presenting the shared cron secret, or
by an administrator. The response mirrors an HTTP exchange: a status code and
a JSON-ready body.
"""

import hmac
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Optional, Union

from fieldwatch.config import get_section
from fieldwatch.db.operations import SqlAlchemyEvidenceStore
from fieldwatch.db.session import session_scope
from fieldwatch.detection.base import DetectionConfig
from fieldwatch.detection.engine import AnomalyDetectionEngine
from fieldwatch.exceptions import AuthorizationError, FieldWatchError
from fieldwatch.utils.common import parse_date

logger = logging.getLogger(__name__)

# Answers "is this user an administrator?" for identities not in the config list
RoleChecker = Callable[[str], bool]


@dataclass
class TriggerRequest:
    cron_secret: Optional[str] = None
    user_id: Optional[str] = None
    window_start: Optional[Union[date, str]] = None


@dataclass
class TriggerResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def authorize(request: TriggerRequest, auth_config: Optional[Dict[str, Any]] = None,
              role_checker: Optional[RoleChecker] = None) -> str:
    """Check the caller's credentials.

    Args:
        request: Trigger request
        auth_config: ``auth`` config section (defaults to the global config)
        role_checker: Optional administrator lookup

    Returns:
        Principal name ('scheduler' or the user id)

    Raises:
        AuthorizationError: 401 without valid credentials, 403 for non-admin users
    """
    if auth_config is None:
        auth_config = get_section('auth')

    expected_secret = auth_config.get('cron_secret')
    if request.cron_secret and expected_secret:
        if hmac.compare_digest(str(request.cron_secret), str(expected_secret)):
            return 'scheduler'

    if not request.user_id:
        raise AuthorizationError("Unauthorized", status_code=401)

    admins = set(auth_config.get('admin_user_ids') or [])
    if request.user_id in admins:
        return request.user_id
    if role_checker is not None and role_checker(request.user_id):
        return request.user_id

    raise AuthorizationError("Forbidden", status_code=403)


def handle_trigger(request: TriggerRequest, engine: AnomalyDetectionEngine,
                   auth_config: Optional[Dict[str, Any]] = None,
                   role_checker: Optional[RoleChecker] = None,
                   cancel_event: Optional[threading.Event] = None) -> TriggerResponse:
    """Authorize the caller and run anomaly detection.

    Args:
        request: Trigger request
        engine: Configured detection engine
        auth_config: ``auth`` config section (defaults to the global config)
        role_checker: Optional administrator lookup
        cancel_event: Optional cancellation event passed to the engine

    Returns:
        TriggerResponse
    """
    try:
        principal = authorize(request, auth_config, role_checker)
    except AuthorizationError as e:
        logger.warning(f"Rejected anomaly detection trigger: {e}")
        return TriggerResponse(e.status_code, {'success': False, 'error': str(e)})

    window_start = None
    if request.window_start is not None:
        window_start = parse_date(request.window_start)
        if window_start is None:
            return TriggerResponse(400, {
                'success': False,
                'error': f"Invalid window start: {request.window_start}"
            })

    logger.info(f"Anomaly detection triggered by {principal}")

    try:
        summary = engine.run(window_start=window_start, cancel_event=cancel_event)
    except FieldWatchError as e:
        logger.error(f"Anomaly detection failed: {e}")
        return TriggerResponse(500, {'success': False, 'error': str(e)})
    except Exception as e:
        logger.exception(f"Unexpected error during anomaly detection: {e}")
        return TriggerResponse(500, {'success': False, 'error': str(e) or 'Unknown error'})

    body = {'success': True}
    body.update(summary.to_dict())
    return TriggerResponse(200, body)


def trigger_from_database(request: TriggerRequest,
                          role_checker: Optional[RoleChecker] = None,
                          cancel_event: Optional[threading.Event] = None) -> TriggerResponse:
    """Handle a trigger against the configured database."""
    with session_scope() as session:
        store = SqlAlchemyEvidenceStore(session)
        engine = AnomalyDetectionEngine(store, store, DetectionConfig.from_settings())
        return handle_trigger(request, engine, role_checker=role_checker, cancel_event=cancel_event)
