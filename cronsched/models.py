from __future__ import annotations

from django.db import models
from django.utils import timezone


class JobDefinition(models.Model):
    job_code = models.CharField(max_length=255, unique=True)
    name = models.CharField(max_length=200, blank=True)

    # Cron expression ("*/5 * * * *"). Blank means the job is never generated.
    schedule_expression = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)
    # "always" jobs bypass expression matching and are started on demand only.
    is_always = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cron_job_definitions"
        indexes = [
            models.Index(fields=["is_active"], name="cron_jobdef_active"),
        ]

    def __str__(self) -> str:
        return self.job_code


class ScheduleQuerySet(models.QuerySet):
    def pending(self):
        return self.filter(status=Schedule.Status.PENDING)

    def try_set_status(self, pk: int, *, expected: str, new: str, **fields) -> bool:
        """Atomically move row ``pk`` from ``expected`` to ``new``.

        Issues a single ``UPDATE ... WHERE id = %s AND status = %s``. Returns
        False when another process changed the row first.
        """

        updated = self.filter(pk=pk, status=expected).update(status=new, **fields)
        return updated == 1

    def try_claim(self, pk: int, *, now, **fields) -> bool:
        return self.try_set_status(
            pk,
            expected=Schedule.Status.PENDING,
            new=Schedule.Status.RUNNING,
            executed_at=now,
            **fields,
        )


class Schedule(models.Model):
    """One concrete planned execution of a job at a specific minute."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        RUNNING = "running", "running"
        SUCCESS = "success", "success"
        ERROR = "error", "error"
        DIED = "died", "died"
        MISSED = "missed", "missed"
        DISAPPEARED = "disappeared", "disappeared"
        DIDNTDOANYTHING = "didnt_do_anything", "didnt_do_anything"
        REPEAT = "repeat", "repeat"
        KILLED = "killed", "killed"
        SKIP_PILINGUP = "skip_piling_up", "skip_piling_up"
        SKIP_OTHERJOBRUNNING = "skip_other_job_running", "skip_other_job_running"

        @classmethod
        def terminal(cls) -> list[str]:
            return [s for s in cls.values if s not in (cls.PENDING, cls.RUNNING)]

    class Reason(models.TextChoices):
        GENERATED = "generate_schedules", "generate_schedules"
        ALWAYS = "always", "always"
        MANUAL = "run_now", "run_now"

    job_code = models.CharField(max_length=255, db_index=True)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)
    messages = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    scheduled_at = models.DateTimeField(null=True, blank=True)
    executed_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    scheduled_reason = models.CharField(
        max_length=32,
        choices=Reason.choices,
        default=Reason.GENERATED,
    )

    # Filled by the external runner.
    host = models.CharField(max_length=255, blank=True)
    pid = models.IntegerField(null=True, blank=True)

    objects = ScheduleQuerySet.as_manager()

    class Meta:
        db_table = "cron_schedule"
        indexes = [
            models.Index(fields=["status", "scheduled_at"], name="cron_sched_status_at"),
            models.Index(fields=["job_code", "status"], name="cron_sched_job_status"),
            models.Index(fields=["status", "finished_at"], name="cron_sched_status_fin"),
        ]

    def __str__(self) -> str:
        return f"Schedule({self.id}) {self.job_code} {self.status}"


class SchedulerSetting(models.Model):
    key = models.CharField(max_length=128, unique=True)
    value_json = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cron_settings"

    def __str__(self) -> str:
        return self.key


class SchedulerState(models.Model):
    """Persisted scalar markers (last generation/cleanup time, cadence samples).

    No expiry: values change only through explicit writes.
    """

    key = models.CharField(max_length=128, unique=True)
    value_json = models.JSONField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cron_state"

    def __str__(self) -> str:
        return self.key
