# dt_core/screening/management/commands/notify_drug_test.py
from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from dt_core.notifications.stager import NotificationStager, determine_stage
from dt_core.screening.models import DrugTest
from dt_core.screening.selectors import get_drug_test


class Command(BaseCommand):
    help = "Re-run the notification stager for one drug test. Sends at most one pending stage."

    def add_arguments(self, parser):
        parser.add_argument("test_id", type=str, help="Drug test UUID.")
        parser.add_argument("--dry-run", action="store_true", help="Print the stage that would fire; send nothing.")

    def handle(self, *args, **opts):
        try:
            test = get_drug_test(test_id=opts["test_id"])
        except (DrugTest.DoesNotExist, ValidationError, ValueError):
            raise CommandError(f"Drug test {opts['test_id']} not found")

        if opts["dry_run"]:
            decision = determine_stage(test)
            if not test.notifications_enabled:
                self.stdout.write("notifications disabled")
            elif not decision.stage:
                self.stdout.write("no stage due")
            elif decision.is_pending:
                self.stdout.write(f"{decision.stage}: pending ({decision.pending_reason})")
            else:
                self.stdout.write(f"{decision.stage}: would send")
            return

        outcome = NotificationStager().run(test)
        self.stdout.write(f"{outcome.status}: {outcome.stage or '-'} {outcome.detail}".rstrip())
        for line in outcome.sent_to:
            self.stdout.write(f"  {line}")
        if outcome.failed_recipients:
            self.stdout.write(self.style.WARNING(f"failed: {', '.join(outcome.failed_recipients)}"))
