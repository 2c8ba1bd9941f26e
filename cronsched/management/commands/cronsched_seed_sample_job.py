from __future__ import annotations

from django.core.management.base import BaseCommand

from cronsched.models import JobDefinition


class Command(BaseCommand):
    help = "Create or update a single sample JobDefinition for local development."

    def add_arguments(self, parser):
        parser.add_argument(
            "--job-code",
            default="sample_every_5_minutes",
            help="JobDefinition.job_code to create/update",
        )
        parser.add_argument(
            "--expression",
            default="*/5 * * * *",
            help="Cron expression",
        )
        parser.add_argument(
            "--disabled",
            action="store_true",
            default=False,
            help="Set is_active=false",
        )
        parser.add_argument(
            "--always",
            action="store_true",
            default=False,
            help="Mark as always job (started on demand, never generated)",
        )

    def handle(self, *args, **options):
        job_code: str = options["job_code"]

        job_def, created = JobDefinition.objects.update_or_create(
            job_code=job_code,
            defaults={
                "name": f"Sample: {job_code}",
                "schedule_expression": "" if options["always"] else options["expression"],
                "is_active": not bool(options["disabled"]),
                "is_always": bool(options["always"]),
            },
        )

        self.stdout.write(
            ("created" if created else "updated")
            + f" JobDefinition id={job_def.id} job_code={job_def.job_code!r} active={job_def.is_active}"
        )
