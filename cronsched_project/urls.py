from __future__ import annotations

from django.contrib import admin
from django.urls import include, path

from cronsched.metrics import metrics_view

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("cronsched.api_urls")),
    path("metrics/", metrics_view, name="metrics"),
]
