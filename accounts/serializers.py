from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from .models import CustomUser, AdminUser
from . import otp as otp_service

ACCOUNT_EXISTS_MESSAGE = 'Account already exists. Please use the Sign In tab to login'


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField(read_only=True)
    is_admin = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name',
            'is_active', 'is_admin', 'last_login_at'
        ]
        read_only_fields = ['id', 'is_active', 'last_login_at']

    def get_full_name(self, obj):
        return f"{obj.first_name} {obj.last_name}".strip()

    def get_is_admin(self, obj):
        return obj.is_xstore_admin


class SignUpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_email(self, value):
        value = CustomUser.objects.normalize_email(value)
        if CustomUser.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(ACCOUNT_EXISTS_MESSAGE)
        return value

    def validate(self, attrs):
        candidate = CustomUser(email=attrs['email'])
        try:
            validate_password(attrs['password'], user=candidate)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({'password': exc.messages})
        return attrs

    def create(self, validated_data):
        return CustomUser.objects.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')

        user = authenticate(username=email, password=password)
        if not user:
            raise serializers.ValidationError('Invalid email or password')

        if not user.is_active:
            raise serializers.ValidationError('User account is disabled')

        attrs['user'] = user
        return attrs


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class AdminUserSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(source='user.id', read_only=True)

    class Meta:
        model = AdminUser
        fields = ['id', 'user_id', 'email', 'role', 'created_at', 'updated_at']
        read_only_fields = fields


class PromoteAdminSerializer(serializers.Serializer):
    user_id = serializers.UUIDField(required=False)
    email = serializers.EmailField(required=False)

    def validate(self, attrs):
        if not attrs.get('user_id') and not attrs.get('email'):
            raise serializers.ValidationError('Provide user_id or email of the user to promote')

        lookup = {'id': attrs['user_id']} if attrs.get('user_id') else {'email__iexact': attrs['email']}
        try:
            user = CustomUser.objects.get(**lookup)
        except CustomUser.DoesNotExist:
            raise serializers.ValidationError('User not found')

        if AdminUser.objects.filter(user=user).exists():
            raise serializers.ValidationError(f'{user.email} is already an admin')

        attrs['user'] = user
        return attrs

    def create(self, validated_data):
        user = validated_data['user']
        return AdminUser.objects.create(user=user, email=user.email, role='admin')


class SendAdminOTPSerializer(serializers.Serializer):
    requested_email = serializers.EmailField()


class VerifyAdminOTPSerializer(serializers.Serializer):
    email = serializers.EmailField()
    otp_code = serializers.CharField(max_length=6, min_length=6)

    def validate_otp_code(self, value):
        if not value.isdigit():
            raise serializers.ValidationError('OTP must be exactly 6 digits')
        return value


class AdminRegistrationSerializer(SignUpSerializer):
    """Create an admin account once its email has a verified OTP."""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if not otp_service.has_verified_otp(attrs['email']):
            raise serializers.ValidationError('Verify the OTP for this email before creating the admin account')
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        otp_service.consume_verified_otp(validated_data['email'])
        user = CustomUser.objects.create_user(**validated_data)
        AdminUser.objects.create(user=user, email=user.email, role='admin')
        return user
