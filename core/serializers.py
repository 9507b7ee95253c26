from django.conf import settings as django_settings
from rest_framework import serializers


class AppSettingsSerializer(serializers.Serializer):
    owner_name = serializers.CharField(max_length=255)
    owner_photo = serializers.CharField(allow_blank=True, required=False)
    owner_email = serializers.EmailField(allow_blank=True, required=False)
    owner_phone = serializers.CharField(max_length=64, allow_blank=True, required=False)
    credit_label = serializers.CharField(max_length=64)
    debit_label = serializers.CharField(max_length=64)


class ResetSerializer(serializers.Serializer):
    confirm_phrase = serializers.CharField()
    acknowledge_irreversible = serializers.BooleanField()

    def validate_confirm_phrase(self, value):
        expected = django_settings.SHOP_RESET_CONFIRM_PHRASE
        if value != expected:
            raise serializers.ValidationError(f"Type '{expected}' to confirm.")
        return value

    def validate_acknowledge_irreversible(self, value):
        if value is not True:
            raise serializers.ValidationError("Reset deletes all shop data and cannot be undone.")
        return value
