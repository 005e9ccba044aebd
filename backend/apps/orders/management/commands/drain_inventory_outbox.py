from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from apps.common import get_logger
from apps.orders.container import build_inventory_outbox

logger = get_logger(__name__).bind(component="orders", layer="command")


class Command(BaseCommand):
    help = "Retry pending and failed inventory adjustments of placed orders."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=100, help="Maximum entries to process")

    def handle(self, *args, **options):
        outbox = build_inventory_outbox()
        report = async_to_sync(outbox.drain)(limit=options["limit"])
        backlog = async_to_sync(outbox.backlog)()
        logger.info(
            "Inventory outbox drained",
            done=len(report.done),
            failed=len(report.failed),
            backlog=backlog,
        )
        self.stdout.write(
            self.style.SUCCESS(
                f"Processed {report.attempted} adjustment(s): "
                f"{len(report.done)} done, {len(report.failed)} failed, {backlog} outstanding"
            )
        )
