from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from cronsched.manager import ScheduleManager
from cronsched.models import JobDefinition


class Command(BaseCommand):
    help = "Start a new RUNNING schedule for an always job unless it is already running."

    def add_arguments(self, parser):
        parser.add_argument("job_code", help="Job code of an always job")
        parser.add_argument("--reason", default="", help="Scheduled reason (defaults to 'always')")

    def handle(self, *args, **options):
        job_code: str = options["job_code"].strip()
        job = JobDefinition.objects.filter(job_code=job_code).first()
        if job is None:
            raise CommandError(f"Unknown job code {job_code!r}")
        if not job.is_always:
            raise CommandError(f"Job {job_code!r} is not an always job")

        reason = (options.get("reason") or "").strip() or None
        schedule = ScheduleManager.from_settings().activate_always(job_code, reason=reason)
        if schedule is None:
            self.stdout.write(f"not created: {job_code} is already running")
            return
        self.stdout.write(self.style.SUCCESS(f"created schedule id={schedule.id} job_code={job_code}"))
