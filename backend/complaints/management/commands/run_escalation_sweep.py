"""
Management command: run_escalation_sweep
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Escalates every complaint whose SLA due date has passed while it is
still ASSIGNED or IN_PROGRESS, one level per run, up to the configured
escalation cap (``COMPLAINT_SLA["ESCALATION_CAP"]``).

The command is **idempotent per run**: a complaint is escalated at most
once per sweep, and complaints already at the cap are left alone.

Usage::

    # single pass (e.g. from cron)
    python manage.py run_escalation_sweep

    # long-running worker, one pass every ESCALATION_SWEEP_INTERVAL_SECONDS
    python manage.py run_escalation_sweep --loop

    # custom interval
    python manage.py run_escalation_sweep --loop --interval 600
"""

import time

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from complaints.services import EscalationSweeper
from core.domain.exceptions import InfrastructureError


class Command(BaseCommand):
    help = "Escalate overdue complaints by one level (optionally in a loop)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            help="Keep running, sweeping once per interval.",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=None,
            help="Seconds between sweeps in --loop mode "
                 "(default: ESCALATION_SWEEP_INTERVAL_SECONDS).",
        )

    def handle(self, *args, **options):
        interval = options["interval"]
        if interval is None:
            interval = settings.ESCALATION_SWEEP_INTERVAL_SECONDS
        if interval < 1:
            raise CommandError("--interval must be at least 1 second.")

        sweeper = EscalationSweeper()
        while True:
            self._sweep_once(sweeper)
            if not options["loop"]:
                break
            time.sleep(interval)

    def _sweep_once(self, sweeper):
        try:
            result = sweeper.run()
        except InfrastructureError as exc:
            self.stderr.write(self.style.ERROR(f"  ✗ Sweep aborted: {exc}"))
            return

        self.stdout.write(self.style.SUCCESS(
            f"  ✓ Escalated {len(result.escalated)} complaint(s)"
        ))
        if result.skipped:
            self.stdout.write(f"    skipped (no longer eligible): {result.skipped}")
        if result.failed:
            self.stdout.write(self.style.WARNING(
                f"    failed: {result.failed}"
            ))
