from django.core.management.base import BaseCommand

from rd_core.models import WorkflowAlert
from rd_core.workflows.sla_scanner import check_sla_breaches


class Command(BaseCommand):
    help = "Raise SLA alerts for requests that are past their SLA date"

    def add_arguments(self, parser):
        parser.add_argument(
            "--list",
            action="store_true",
            help="Print open alerts after the scan.",
        )

    def handle(self, *args, **options):
        created = check_sla_breaches()
        self.stdout.write(self.style.SUCCESS(f"{created} new SLA alert(s)."))

        if options["list"]:
            for alert in WorkflowAlert.objects.filter(resolved_at__isnull=True):
                self.stdout.write(
                    f"{alert.kind}:{alert.object_id} {alert.state} due {alert.sla_date:%Y-%m-%d %H:%M}"
                )
