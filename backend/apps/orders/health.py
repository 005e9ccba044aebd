from django.conf import settings
from django.db.utils import OperationalError

from apps.common import get_logger

from .repositories import DjangoOutboxStore

logger = get_logger(__name__).bind(component='orders', layer='health')


def outbox_check():
    """Pending inventory adjustments; a backlog is reported, never failing."""
    try:
        backlog = DjangoOutboxStore().backlog_sync()
    except OperationalError as e:
        logger.warning('Outbox health check failed', error=str(e))
        return {'status': 'fail', 'error': str(e)}
    threshold = getattr(settings, 'STOREFRONT_OUTBOX_WARN_BACKLOG', 100)
    status = 'ok' if backlog < threshold else 'backlogged'
    if status != 'ok':
        logger.warning('Inventory outbox backlog is high', backlog=backlog, threshold=threshold)
    return {'status': status, 'backlog': backlog}
