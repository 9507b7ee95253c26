from django.urls import path

from core.views import BackupView, ResetView, SettingsView

urlpatterns = [
    path("settings/", SettingsView.as_view(), name="settings"),
    path("backup/", BackupView.as_view(), name="backup"),
    path("reset/", ResetView.as_view(), name="reset"),
]
