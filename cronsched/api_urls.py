from __future__ import annotations

from django.urls import path

from .api_views import activate_always, cadence, flush, pending_schedules

app_name = "cronsched_api"

urlpatterns = [
    path("cadence/", cadence, name="cadence"),
    path("schedules/pending/", pending_schedules, name="pending_schedules"),
    path("schedules/flush/", flush, name="flush"),
    path("jobs/<str:job_code>/always/", activate_always, name="activate_always"),
]
