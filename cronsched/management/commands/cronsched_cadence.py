from __future__ import annotations

import json

from django.core.management.base import BaseCommand

from cronsched.manager import ScheduleManager


class Command(BaseCommand):
    help = "Show measured interval between scheduler invocations."

    def add_arguments(self, parser):
        parser.add_argument("--json", action="store_true", default=False, help="Print JSON")

    def handle(self, *args, **options):
        stats = ScheduleManager.from_settings().measured_cron_interval()

        if options["json"]:
            payload = {"available": False} if stats is None else {"available": True, **stats.as_dict()}
            self.stdout.write(json.dumps(payload, sort_keys=True))
            return

        if stats is None:
            self.stdout.write("not enough data points")
            return
        self.stdout.write(
            f"average={stats.average:.2f}min min={stats.min:.2f}min max={stats.max:.2f}min "
            f"count={stats.count} last={stats.last}"
        )
