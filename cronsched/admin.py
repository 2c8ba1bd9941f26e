from __future__ import annotations

from django.contrib import admin

from .models import JobDefinition, Schedule, SchedulerSetting, SchedulerState


@admin.register(JobDefinition)
class JobDefinitionAdmin(admin.ModelAdmin):
    list_display = ("job_code", "schedule_expression", "is_active", "is_always", "updated_at")
    list_filter = ("is_active", "is_always")
    search_fields = ("job_code", "name")


@admin.register(Schedule)
class ScheduleAdmin(admin.ModelAdmin):
    list_display = ("id", "job_code", "status", "scheduled_at", "executed_at", "finished_at", "scheduled_reason")
    list_filter = ("status", "scheduled_reason")
    search_fields = ("job_code",)
    ordering = ("-scheduled_at",)


@admin.register(SchedulerSetting)
class SchedulerSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "updated_at")
    search_fields = ("key",)


@admin.register(SchedulerState)
class SchedulerStateAdmin(admin.ModelAdmin):
    list_display = ("key", "updated_at")
    search_fields = ("key",)
