from django.http import HttpResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.repository import get_repository
from core.serializers import AppSettingsSerializer, ResetSerializer
from core.services import backup_filename, render_backup, reset_all, update_settings


class RepositoryMixin:
    """Loads the shop repository once per request."""

    def get_repository(self):
        repository = getattr(self, "_repository", None)
        if repository is None:
            repository = get_repository()
            self._repository = repository
        return repository


class SettingsView(RepositoryMixin, APIView):
    def get(self, request):
        return Response(AppSettingsSerializer(self.get_repository().settings).data)

    def put(self, request):
        return self._save(request, partial=False)

    def patch(self, request):
        return self._save(request, partial=True)

    def _save(self, request, *, partial):
        repository = self.get_repository()
        serializer = AppSettingsSerializer(repository.settings, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        updated = update_settings(repository, serializer.validated_data)
        return Response(AppSettingsSerializer(updated).data)


class BackupView(RepositoryMixin, APIView):
    def get(self, request):
        response = HttpResponse(render_backup(self.get_repository()), content_type="application/json; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{backup_filename()}"'
        return response


class ResetView(RepositoryMixin, APIView):
    def post(self, request):
        serializer = ResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        removed = reset_all(self.get_repository())
        return Response({"reset": True, "removed": removed}, status=status.HTTP_200_OK)
