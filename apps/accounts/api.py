# apps/accounts/api.py
"""
Authentication and account API endpoints.

Endpoints:
1) POST /api/auth/signup/                 - Register (customer or partner)
2) POST /api/auth/login/                  - Email/password login, returns JWT pair
3) POST /api/auth/logout/                 - Blacklist refresh token
4) POST /api/auth/token/refresh/          - Refresh access token
5) GET|PATCH /api/auth/me/                - Current user payload / update profile
6) POST /api/auth/resend-verification/    - Resend email verification link
7) POST /api/auth/change-password/        - Change password, revoke refresh tokens

Admin Endpoints:
8) GET   /api/admin/users/                - List users (role/status/search filters)
9) PATCH /api/admin/users/{uuid}/         - Change role or status
"""
import logging
from django.contrib.auth import authenticate, get_user_model, logout as django_logout
from django.contrib.auth.models import update_last_login
from django.conf import settings
from django.db.models import Q
from django.http import Http404, HttpResponseRedirect
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from allauth.account.models import EmailAddress
from allauth.account.views import ConfirmEmailView

from .decorators import rate_limit
from .permissions import IsAdmin
from .serializers import (
    LoginRequestSerializer,
    SignupRequestSerializer,
    AuthResponseSerializer,
    LogoutResponseSerializer,
    UserPayloadSerializer,
    UserUpdateSerializer,
    AdminUserSerializer,
    AdminUserUpdateSerializer,
    ChangePasswordSerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    return {
        "access": str(refresh.access_token),
        "refresh": str(refresh),
    }


def user_payload(user):
    """Generate user payload for API responses."""
    return UserPayloadSerializer(user).data


# --------------------------------------------------
# Email / Password Auth
# --------------------------------------------------


@swagger_auto_schema(
    method="post",
    tags=["Auth"],
    request_body=LoginRequestSerializer,
    responses={
        200: AuthResponseSerializer,
        400: "Email and password required",
        401: "Invalid credentials",
        403: "Email not verified or account suspended",
    },
    operation_description="Login with email and password to receive JWT tokens.",
)
@api_view(["POST"])
@permission_classes([AllowAny])
@rate_limit("login", limit=10, period=60)
def login_api(request):
    serializer = LoginRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"success": False, "error": "Invalid data", "errors": serializer.errors},
            status=400,
        )

    email = serializer.validated_data["email"].strip().lower()
    password = serializer.validated_data["password"]

    try:
        user = User.objects.get(email__iexact=email)
    except User.DoesNotExist:
        logger.warning(f"Login attempt with non-existent email: {email}")
        return Response({"success": False, "error": "Invalid credentials"}, status=401)

    # Account state is only revealed to someone who knows the password
    if not user.check_password(password):
        logger.warning(f"Authentication failed for email: {email}")
        return Response({"success": False, "error": "Invalid credentials"}, status=401)

    if user.status == User.STATUS_SUSPENDED:
        logger.warning(f"Login attempt for suspended account: {email}")
        return Response(
            {
                "success": False,
                "error": "This account has been suspended. Contact support.",
                "code": "account_suspended",
            },
            status=403,
        )

    # Superusers are created from the CLI and never receive a confirmation mail
    if not user.is_superuser:
        verified = EmailAddress.objects.filter(
            user=user, email__iexact=user.email, verified=True
        ).exists()
        if not verified:
            logger.warning(f"Login attempt with unverified email: {email}")
            return Response(
                {
                    "success": False,
                    "error": "Please verify your email before logging in",
                    "code": "email_not_verified",
                },
                status=403,
            )

    authenticated_user = authenticate(request=request, email=user.email, password=password)

    if not authenticated_user:
        logger.warning(f"Authentication failed for email: {email}")
        return Response({"success": False, "error": "Invalid credentials"}, status=401)

    tokens = issue_tokens(authenticated_user)
    update_last_login(None, authenticated_user)

    logger.info(f"Successful login for user: {authenticated_user.email} role={authenticated_user.role}")

    return Response(
        {
            "success": True,
            "message": f"Welcome back, {authenticated_user.username}!",
            "tokens": tokens,
            "user": user_payload(authenticated_user),
        },
        status=200,
    )


@swagger_auto_schema(
    method="post",
    tags=["Auth"],
    request_body=SignupRequestSerializer,
    responses={201: "Account created, verification email sent", 400: "Validation error"},
    operation_description="Register a new customer or partner account with email and password.",
)
@api_view(["POST"])
@permission_classes([AllowAny])
@rate_limit("signup", limit=10, period=60)
def signup_api(request):
    serializer = SignupRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"success": False, "errors": serializer.errors},
            status=400,
        )

    data = serializer.validated_data
    email = data["email"]

    # ------------------------------------------------
    # Case 1: Email already exists
    # ------------------------------------------------
    existing_user = User.objects.filter(email__iexact=email).first()
    if existing_user:
        email_address = EmailAddress.objects.filter(
            user=existing_user,
            email__iexact=email,
        ).first()

        if email_address and email_address.verified:
            return Response(
                {
                    "success": False,
                    "error": "Email already registered and verified. Please log in.",
                },
                status=400,
            )

        email_address, _ = EmailAddress.objects.get_or_create(
            user=existing_user,
            email=existing_user.email,
            defaults={"verified": False, "primary": True},
        )
        email_address.send_confirmation(request)

        return Response(
            {
                "success": True,
                "message": "Email not verified. Verification email resent.",
            },
            status=200,
        )

    # ------------------------------------------------
    # Case 2: New user
    # ------------------------------------------------
    if User.objects.filter(username=data["username"]).exists():
        return Response(
            {"success": False, "error": "Username already taken"},
            status=400,
        )

    # create_user hashes the password
    user = User.objects.create_user(
        username=data["username"],
        email=email,
        password=data["password"],
        first_name=data.get("first_name", ""),
        last_name=data.get("last_name", ""),
        phone=data.get("phone", ""),
        role=data["role"],
    )

    email_address = EmailAddress.objects.create(
        user=user,
        email=email,
        verified=False,
        primary=True,
    )
    email_address.send_confirmation(request, signup=True)

    logger.info(f"New account registered: {email} role={user.role}")

    return Response(
        {
            "success": True,
            "message": "Account created. Verification email sent.",
            "user": user_payload(user),
        },
        status=201,
    )


@swagger_auto_schema(
    method="post",
    tags=["Auth"],
    request_body=openapi.Schema(
        type=openapi.TYPE_OBJECT,
        properties={
            "refresh_token": openapi.Schema(
                type=openapi.TYPE_STRING, description="Refresh token to blacklist"
            )
        },
    ),
    operation_description="Logout current user and blacklist the refresh token",
    responses={200: LogoutResponseSerializer},
)
@api_view(["POST"])
@permission_classes([AllowAny])
def logout_api(request):
    """Blacklists the refresh token and clears the Django session."""
    refresh_token = request.data.get("refresh_token")
    if refresh_token:
        try:
            RefreshToken(refresh_token).blacklist()
            logger.info(f"Blacklisted refresh token for user: {request.user}")
        except TokenError as e:
            logger.warning(f"Failed to blacklist token: {e}")

    if request.user.is_authenticated:
        django_logout(request)

    return Response(
        {
            "success": True,
            "message": "Logged out successfully.",
        }
    )


class DecoratedTokenRefreshView(TokenRefreshView):
    @swagger_auto_schema(
        tags=["Auth"],
        operation_description="Refresh access token using refresh token",
        responses={
            200: openapi.Response(
                description="New access token",
                examples={"application/json": {"access": "<new_access_token>"}},
            )
        },
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class MeAPI(APIView):
    """
    GET   /api/auth/me/ - Current user payload
    PATCH /api/auth/me/ - Update name, phone and notification preferences
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Auth"],
        operation_summary="Current User",
        responses={200: UserPayloadSerializer},
    )
    def get(self, request):
        return Response(user_payload(request.user))

    @swagger_auto_schema(
        tags=["Auth"],
        operation_summary="Update Current User",
        request_body=UserUpdateSerializer,
        responses={200: UserPayloadSerializer},
    )
    def patch(self, request):
        serializer = UserUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(user_payload(user))


@swagger_auto_schema(
    method="post",
    tags=["Auth"],
    operation_summary="Change Password",
    operation_description=(
        "Verify the current password and set a new one. Every refresh token issued "
        "before the change is blacklisted and a fresh pair is returned."
    ),
    request_body=ChangePasswordSerializer,
    responses={200: AuthResponseSerializer, 400: "Current password incorrect or new password invalid"},
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@rate_limit("change_password", limit=5, period=300)
def change_password_api(request):
    user = request.user
    serializer = ChangePasswordSerializer(data=request.data, context={"user": user})
    if not serializer.is_valid():
        return Response(
            {"success": False, "error": "Invalid data", "errors": serializer.errors},
            status=400,
        )

    user.set_password(serializer.validated_data["new_password"])
    user.save(update_fields=["password"])

    # Sessions on other devices end with their refresh tokens
    revoked = 0
    for outstanding in OutstandingToken.objects.filter(user=user):
        _, created = BlacklistedToken.objects.get_or_create(token=outstanding)
        revoked += int(created)

    logger.info(f"[PASSWORD_CHANGED] user={user.email} revoked_tokens={revoked}")

    return Response(
        {
            "success": True,
            "message": "Password updated successfully.",
            "tokens": issue_tokens(user),
            "user": user_payload(user),
        }
    )


# --------------------------------------------------
# Email Verification
# --------------------------------------------------


class CustomConfirmEmailView(ConfirmEmailView):
    """Confirms the key and redirects to the frontend result page."""

    def get(self, *args, **kwargs):
        frontend_url = settings.FRONTEND_URL
        try:
            self.object = self.get_object()
        except Http404:
            return HttpResponseRedirect(f"{frontend_url}/verify-email?status=failed")

        self.object.confirm(self.request)
        return HttpResponseRedirect(f"{frontend_url}/verify-email?status=success")


@swagger_auto_schema(
    method="post",
    tags=["Auth"],
    operation_description="Resend email verification link",
    request_body=openapi.Schema(
        type=openapi.TYPE_OBJECT,
        required=["email"],
        properties={
            "email": openapi.Schema(type=openapi.TYPE_STRING, format="email")
        },
    ),
    responses={200: "Verification email sent (or already verified)"},
)
@api_view(["POST"])
@permission_classes([AllowAny])
@rate_limit("resend_verification", limit=5, period=300)
def resend_verification_api(request):
    """
    Resend email verification link.
    Does not reveal whether the email exists.
    """
    email = request.data.get("email", "").strip().lower()

    if not email:
        return Response({"success": False, "error": "Email is required"}, status=400)

    success_response = Response(
        {
            "success": True,
            "message": "If this email exists and is unverified, a verification link has been sent.",
        }
    )

    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        logger.info(f"Resend verification requested for non-existent email: {email}")
        return success_response

    email_address, _ = EmailAddress.objects.get_or_create(
        user=user,
        email=user.email,
        defaults={"verified": False, "primary": True},
    )

    if email_address.verified:
        return Response(
            {
                "success": True,
                "message": "This email is already verified. You can log in.",
            }
        )

    email_address.send_confirmation(request)
    logger.info(f"Verification email resent to: {email}")

    return success_response


# --------------------------------------------------
# Admin user management
# --------------------------------------------------


class AdminUserListAPI(generics.ListAPIView):
    """
    GET /api/admin/users/

    Query Parameters:
    - role: user|partner|admin
    - status: active|inactive|suspended
    - search: matches email, username, first or last name
    """
    serializer_class = AdminUserSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="List Users",
        manual_parameters=[
            openapi.Parameter("role", openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=[c[0] for c in User.ROLE_CHOICES]),
            openapi.Parameter("status", openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=[c[0] for c in User.STATUS_CHOICES]),
            openapi.Parameter("search", openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        queryset = User.objects.all().order_by("-date_joined")
        params = self.request.query_params

        role = params.get("role")
        if role:
            queryset = queryset.filter(role=role)

        status_filter = params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        search = params.get("search")
        if search:
            queryset = queryset.filter(
                Q(email__icontains=search)
                | Q(username__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return queryset


class AdminUserUpdateAPI(APIView):
    """PATCH /api/admin/users/{uuid}/ - change role or status."""
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin"],
        operation_summary="Update User Role/Status",
        request_body=AdminUserUpdateSerializer,
        responses={200: AdminUserSerializer, 400: "Validation error", 404: "Not found"},
    )
    def patch(self, request, id):
        user = get_object_or_404(User, public_id=id)

        if user == request.user:
            return Response(
                {"error": "You cannot change your own role or status."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = AdminUserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        update_fields = []
        for field in ("role", "status"):
            if field in serializer.validated_data:
                setattr(user, field, serializer.validated_data[field])
                update_fields.append(field)

        if "status" in serializer.validated_data:
            user.is_active = user.status != User.STATUS_SUSPENDED
            update_fields.append("is_active")

        user.save(update_fields=update_fields)

        logger.info(
            f"[ADMIN_USER_UPDATE] admin={request.user.email} user={user.email} "
            f"changes={serializer.validated_data}"
        )
        return Response(AdminUserSerializer(user).data)
