"""
Commanders app serializers.
"""

from __future__ import annotations

import re

from rest_framework import serializers

from .models import CommanderStatus, UnitCommander

_PHONE_REGEX = re.compile(r"^\+?\d{7,15}$")


class UnitCommanderSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    has_password = serializers.SerializerMethodField()

    class Meta:
        model = UnitCommander
        fields = [
            "id",
            "username",
            "full_name",
            "email",
            "phone_number",
            "service_number",
            "rank",
            "unit",
            "category",
            "state",
            "status",
            "has_password",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_has_password(self, obj: UnitCommander) -> bool:
        return obj.user.has_usable_password()


class CommanderRegistrationSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    service_number = serializers.CharField(max_length=50)
    rank = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    unit = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    state = serializers.CharField(max_length=100)

    def validate_phone_number(self, value: str) -> str:
        if value and not _PHONE_REGEX.match(value):
            raise serializers.ValidationError("Enter a valid phone number (7-15 digits, optional leading +).")
        return value


class CommanderFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CommanderStatus.choices, required=False)
    state = serializers.CharField(max_length=100, required=False)
    search = serializers.CharField(max_length=255, required=False)


class CommanderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CommanderStatus.choices)


class PasswordSetupSerializer(serializers.Serializer):
    email = serializers.EmailField()
    token = serializers.CharField(max_length=128)
    password = serializers.CharField(write_only=True, style={"input_type": "password"})
    password_confirm = serializers.CharField(write_only=True, style={"input_type": "password"})

    def validate(self, attrs):
        if attrs["password"] != attrs["password_confirm"]:
            raise serializers.ValidationError({"password_confirm": ["Passwords do not match."]})
        return attrs
