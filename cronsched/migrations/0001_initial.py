from __future__ import annotations

from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="JobDefinition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("job_code", models.CharField(max_length=255, unique=True)),
                ("name", models.CharField(blank=True, max_length=200)),
                ("schedule_expression", models.CharField(blank=True, max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("is_always", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "cron_job_definitions",
                "indexes": [
                    models.Index(fields=["is_active"], name="cron_jobdef_active"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Schedule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("job_code", models.CharField(db_index=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "pending"),
                            ("running", "running"),
                            ("success", "success"),
                            ("error", "error"),
                            ("died", "died"),
                            ("missed", "missed"),
                            ("disappeared", "disappeared"),
                            ("didnt_do_anything", "didnt_do_anything"),
                            ("repeat", "repeat"),
                            ("killed", "killed"),
                            ("skip_piling_up", "skip_piling_up"),
                            ("skip_other_job_running", "skip_other_job_running"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("messages", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("scheduled_at", models.DateTimeField(blank=True, null=True)),
                ("executed_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                (
                    "scheduled_reason",
                    models.CharField(
                        choices=[
                            ("generate_schedules", "generate_schedules"),
                            ("always", "always"),
                            ("run_now", "run_now"),
                        ],
                        default="generate_schedules",
                        max_length=32,
                    ),
                ),
                ("host", models.CharField(blank=True, max_length=255)),
                ("pid", models.IntegerField(blank=True, null=True)),
            ],
            options={
                "db_table": "cron_schedule",
                "indexes": [
                    models.Index(fields=["status", "scheduled_at"], name="cron_sched_status_at"),
                    models.Index(fields=["job_code", "status"], name="cron_sched_job_status"),
                    models.Index(fields=["status", "finished_at"], name="cron_sched_status_fin"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SchedulerSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=128, unique=True)),
                ("value_json", models.JSONField(blank=True, default=dict)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"db_table": "cron_settings"},
        ),
        migrations.CreateModel(
            name="SchedulerState",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=128, unique=True)),
                ("value_json", models.JSONField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"db_table": "cron_state"},
        ),
    ]
