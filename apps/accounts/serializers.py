# apps/accounts/serializers.py
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

User = get_user_model()

PREFERENCE_KEYS = ('booking_updates', 'promotions', 'partner_news', 'sms', 'email_digest')


class LoginRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class SignupRequestSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    # Admins are never created through signup
    role = serializers.ChoiceField(
        choices=[User.ROLE_USER, User.ROLE_PARTNER],
        default=User.ROLE_USER,
    )

    def validate_email(self, value):
        return value.strip().lower()

    def validate_password(self, value):
        validate_password(value)
        return value


class TokenSerializer(serializers.Serializer):
    access = serializers.CharField()
    refresh = serializers.CharField()


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_current_password(self, value):
        if not self.context['user'].check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate(self, attrs):
        if attrs['current_password'] == attrs['new_password']:
            raise serializers.ValidationError({'new_password': "The new password must differ from the current one."})
        validate_password(attrs['new_password'], self.context['user'])
        return attrs


class UserPayloadSerializer(serializers.ModelSerializer):
    """User payload returned by login, signup and /me."""

    uuid = serializers.UUIDField(source='public_id', read_only=True)
    name = serializers.CharField(source='display_name', read_only=True)
    is_admin = serializers.BooleanField(source='is_admin_user', read_only=True)
    has_partner_profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'uuid',
            'username',
            'email',
            'first_name',
            'last_name',
            'name',
            'phone',
            'role',
            'status',
            'is_admin',
            'has_partner_profile',
            'notification_preferences',
            'date_joined',
            'last_login',
        ]
        read_only_fields = fields

    def get_has_partner_profile(self, obj):
        return hasattr(obj, 'partner_profile')


class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'phone', 'notification_preferences']

    def validate_notification_preferences(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Preferences must be an object.")
        unknown = set(value) - set(PREFERENCE_KEYS)
        if unknown:
            raise serializers.ValidationError(f"Unknown preferences: {', '.join(sorted(unknown))}")
        for key, flag in value.items():
            if not isinstance(flag, bool):
                raise serializers.ValidationError(f"Preference '{key}' must be true or false.")
        merged = dict(self.instance.notification_preferences or {}) if self.instance else {}
        merged.update(value)
        return merged


class AdminUserSerializer(serializers.ModelSerializer):
    uuid = serializers.UUIDField(source='public_id', read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'uuid',
            'username',
            'email',
            'first_name',
            'last_name',
            'phone',
            'role',
            'status',
            'is_active',
            'is_staff',
            'date_joined',
            'last_login',
        ]
        read_only_fields = fields


class AdminUserUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide role and/or status.")
        return attrs


class AuthResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    tokens = TokenSerializer()
    user = UserPayloadSerializer()


class LogoutResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
