import logging

from rest_framework import generics, status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.exceptions import TokenError
from django.conf import settings
from django.db import IntegrityError, connection, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiExample

from .models import AdminUser
from .serializers import (
    UserSerializer, SignUpSerializer, LoginSerializer, LogoutSerializer,
    AdminUserSerializer, PromoteAdminSerializer, SendAdminOTPSerializer,
    VerifyAdminOTPSerializer, AdminRegistrationSerializer
)
from .exceptions import error_body
from .permissions import IsXstoreAdmin, admin_exists
from . import otp as otp_service

logger = logging.getLogger(__name__)


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    refresh['email'] = user.email
    refresh['is_admin'] = user.is_xstore_admin
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


# =============== AUTHENTICATION VIEWS ===============

class AdminTokenObtainPairView(TokenObtainPairView):
    """
    Back-office sign-in.

    While the admin roster is empty the first user to sign in becomes the
    first admin. After that only rostered admins receive tokens.
    """
    serializer_class = LoginSerializer

    @extend_schema(
        summary="Admin Sign In",
        description="""
        Authenticate with email and password.
        - Setup mode (no admins yet): the signing-in user becomes the first admin
        - Otherwise: non-admin accounts are refused with 403
        """,
        request=LoginSerializer,
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'refresh': {'type': 'string', 'description': 'JWT refresh token'},
                    'access': {'type': 'string', 'description': 'JWT access token'},
                    'user': {'type': 'object', 'description': 'User information'},
                    'is_admin': {'type': 'boolean'},
                    'bootstrapped': {'type': 'boolean', 'description': 'True when this sign-in created the first admin'},
                }
            },
            400: {'description': 'Invalid credentials'},
            403: {'description': "You don't have admin privileges"}
        },
        examples=[
            OpenApiExample(
                'Admin Login',
                value={"email": "admin@xstore.in", "password": "Admin123!@#"}
            )
        ]
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']

        bootstrapped = False
        try:
            with transaction.atomic():
                if not AdminUser.objects.exists():
                    AdminUser.objects.create(user=user, email=user.email, role='admin', first_admin=True)
                    bootstrapped = True
                    logger.warning("No admins existed; %s bootstrapped as first admin", user.email)
        except IntegrityError:
            logger.warning("Concurrent first-admin sign-in; %s was not bootstrapped", user.email)

        if not user.is_xstore_admin:
            logger.info("Sign-in refused for non-admin %s", user.email)
            return Response(
                error_body('Access Denied', {'error': "You don't have admin privileges"}, 403),
                status=status.HTTP_403_FORBIDDEN
            )

        user.last_login_at = timezone.now()
        user.save(update_fields=['last_login_at'])

        return Response({
            **issue_tokens(user),
            'user': UserSerializer(user).data,
            'is_admin': True,
            'bootstrapped': bootstrapped,
        }, status=status.HTTP_200_OK)


@extend_schema(
    summary="Create Account",
    description="Register an email/password account. Admin rights are granted separately.",
    request=SignUpSerializer,
    responses={201: UserSerializer, 400: {'description': 'Account already exists or weak password'}},
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def signup(request):
    serializer = SignUpSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    return Response({
        'message': 'Account created successfully',
        'user': UserSerializer(user).data,
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    summary="Sign Out",
    description="Blacklist the refresh token so the session cannot be renewed.",
    request=LogoutSerializer,
    responses={205: {'description': 'Signed out'}},
)
@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def logout(request):
    serializer = LogoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        RefreshToken(serializer.validated_data['refresh']).blacklist()
    except TokenError as exc:
        return Response(
            error_body('Validation error', {'refresh': [str(exc)]}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )
    return Response({'message': 'Signed out successfully'}, status=status.HTTP_205_RESET_CONTENT)


@extend_schema(summary="Current Session", responses={200: UserSerializer})
@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def session(request):
    return Response({
        'user': UserSerializer(request.user).data,
        'is_admin': request.user.is_xstore_admin,
    })


@extend_schema(summary="Setup Mode", description="True while no administrator exists.")
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def setup_status(request):
    return Response({'setup_mode': not admin_exists()})


@extend_schema(summary="Check Admin Status")
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def admin_status(request):
    is_admin = bool(request.user and request.user.is_authenticated and request.user.is_xstore_admin)
    return Response({'is_admin': is_admin})


# =============== ADMIN ROSTER ===============

class AdminUserListCreateView(generics.ListCreateAPIView):
    """
    get: List admins, newest first
    post: Promote an existing account to admin
    """
    queryset = AdminUser.objects.select_related('user').order_by('-created_at')
    permission_classes = [IsXstoreAdmin]
    filter_backends = []

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return PromoteAdminSerializer
        return AdminUserSerializer

    @extend_schema(
        summary="Promote User To Admin",
        request=PromoteAdminSerializer,
        responses={201: AdminUserSerializer, 400: {'description': 'User not found or already admin'}},
    )
    def post(self, request, *args, **kwargs):
        serializer = PromoteAdminSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        admin_user = serializer.save()
        logger.info("%s promoted %s to admin", request.user.email, admin_user.email)
        return Response({
            'message': f'{admin_user.email} is now an admin',
            'admin': AdminUserSerializer(admin_user).data,
        }, status=status.HTTP_201_CREATED)


@extend_schema(summary="Remove Admin", responses={204: None, 400: {'description': 'Cannot remove yourself'}})
@api_view(['DELETE'])
@permission_classes([IsXstoreAdmin])
def remove_admin(request, user_id):
    admin_user = get_object_or_404(AdminUser, user_id=user_id)
    if admin_user.user_id == request.user.id:
        return Response(
            error_body('Validation error', {'non_field_errors': ['You cannot remove your own admin privileges']}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    admin_user.delete()
    logger.info("%s removed admin privileges from %s", request.user.email, admin_user.email)
    return Response(status=status.HTTP_204_NO_CONTENT)


# =============== ADMIN PROVISIONING (OTP) ===============

@extend_schema(
    summary="Request Admin Access",
    description="""
    Generate a 6-digit OTP for the requested email and send it to the
    approver inbox. The code expires after 10 minutes.
    """,
    request=SendAdminOTPSerializer,
    examples=[OpenApiExample('Request', value={"requested_email": "new.admin@xstore.in"})],
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def send_admin_otp(request):
    serializer = SendAdminOTPSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    requested_email = serializer.validated_data['requested_email']

    try:
        otp = otp_service.issue_admin_otp(requested_email)
        otp_service.send_admin_otp_email(otp)
    except (otp_service.OTPStorageError, otp_service.OTPDeliveryError) as exc:
        return Response({
            'success': False,
            'error': str(exc),
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'success': True,
        'message': f'OTP sent to admin for verification of {requested_email}',
        'expires_in': f'{settings.XSTORE_OTP_TTL_MINUTES} minutes',
    })


@extend_schema(summary="Verify Admin OTP", request=VerifyAdminOTPSerializer)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def verify_admin_otp(request):
    serializer = VerifyAdminOTPSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email']

    if otp_service.verify_admin_otp(email, serializer.validated_data['otp_code']) is None:
        return Response({
            'success': False,
            'error': 'Invalid or expired OTP code',
        }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'message': 'OTP verified successfully',
        'email': email,
    })


@extend_schema(
    summary="Create Admin Account",
    description="Finish provisioning: needs a verified, unexpired OTP for the email.",
    request=AdminRegistrationSerializer,
    responses={201: UserSerializer},
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def register_admin(request):
    serializer = AdminRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info("Admin account created for %s via OTP approval", user.email)
    return Response({
        'message': 'Admin Account Created Successfully. You can now sign in with your credentials',
        'user': UserSerializer(user).data,
    }, status=status.HTTP_201_CREATED)


# =============== SYSTEM ===============

@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")

        return Response({
            'status': 'healthy',
            'timestamp': timezone.now().isoformat(),
            'database': 'connected',
            'version': '1.0.0'
        })
    except Exception as e:
        logger.exception("Health check failed")
        return Response({
            'status': 'unhealthy',
            'timestamp': timezone.now().isoformat(),
            'database': 'disconnected',
            'error': str(e)
        }, status=status.HTTP_503_SERVICE_UNAVAILABLE)
