from django.http import JsonResponse
from django.db import connections
from django.db.utils import OperationalError
from django.conf import settings
from django.utils.module_loading import import_string
import time
import os

import redis as redis_lib

from .logger import get_logger

logger = get_logger(__name__).bind(component='common', layer='health')


def _redis_ping(url: str, timeout: float = 0.3):
    try:
        client = redis_lib.from_url(url, socket_connect_timeout=timeout, socket_timeout=timeout)
        pong = client.ping()
    except redis_lib.RedisError as e:
        logger.warning('Redis health check failed', error=str(e))
        return {'status': 'fail', 'error': str(e)}
    if not pong:
        logger.warning('Redis health check returned unexpected response')
        return {'status': 'fail'}
    return {'status': 'ok'}


def _db_check(alias='default'):
    started = time.time()
    try:
        conn = connections[alias]
        conn.cursor().execute('SELECT 1')
    except OperationalError as e:
        logger.warning('Database health check encountered operational error', alias=alias, error=str(e))
        return {'status': 'fail', 'error': str(e)}
    latency = round((time.time() - started) * 1000, 2)
    logger.debug('Database health check succeeded', alias=alias, latency_ms=latency)
    return {'status': 'ok', 'latency_ms': latency}


def _extra_checks(database_ok: bool):
    """Checks registered in ``READINESS_CHECKS``; they all need the database."""
    results = {}
    for name, path in getattr(settings, 'READINESS_CHECKS', {}).items():
        if database_ok:
            results[name] = import_string(path)()
        else:
            results[name] = {'status': 'skipped', 'detail': 'database unavailable'}
    return results


def live_health(request):
    """Liveness probe: process is up and can service requests."""
    logger.debug('Liveness probe served')
    return JsonResponse({'status': 'alive'})


def ready_health(request):
    """Readiness probe: verifies the database and Redis, then any registered checks."""
    checks = {}
    checks['database'] = _db_check()

    redis_url = os.getenv('REDIS_URL')
    if redis_url:
        checks['redis'] = _redis_ping(redis_url)
    else:
        checks['redis'] = {'status': 'skipped', 'detail': 'REDIS_URL not set'}

    checks.update(_extra_checks(checks['database']['status'] == 'ok'))

    failing = [name for name, r in checks.items() if r.get('status') == 'fail']
    overall_status = 'ok' if not failing else 'degraded'
    http_status = 200 if not failing else 503
    payload = {
        'status': overall_status,
        'checks': checks,
    }
    logger.info('Readiness probe evaluated', status=overall_status, failing_components=failing)
    return JsonResponse(payload, status=http_status)
