from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from cronsched.manager import ScheduleManager


class Command(BaseCommand):
    help = "Delete future pending schedules (optionally for one job), or every schedule with --all."

    def add_arguments(self, parser):
        parser.add_argument("--job-code", default="", help="Only flush schedules of this job code")
        parser.add_argument(
            "--all",
            action="store_true",
            default=False,
            help="Delete all schedules regardless of status",
        )

    def handle(self, *args, **options):
        job_code = (options.get("job_code") or "").strip()
        delete_everything = bool(options["all"])
        if delete_everything and job_code:
            raise CommandError("--job-code and --all are mutually exclusive")

        manager = ScheduleManager.from_settings()
        if delete_everything:
            deleted = manager.delete_all()
            self.stdout.write(self.style.SUCCESS(f"deleted={deleted} (all schedules)"))
            return

        deleted = manager.flush_schedules(job_code or None)
        self.stdout.write(self.style.SUCCESS(f"flushed={deleted} job_code={job_code or '*'}"))
