# apps/accounts/urls.py
from django.urls import path
from . import api

app_name = "accounts"

urlpatterns = [
    path("login/", api.login_api, name="login"),
    path("signup/", api.signup_api, name="signup"),
    path("logout/", api.logout_api, name="logout"),
    path("token/refresh/", api.DecoratedTokenRefreshView.as_view(), name="token_refresh"),
    path("me/", api.MeAPI.as_view(), name="me"),
    path("change-password/", api.change_password_api, name="change_password"),
    path("resend-verification/", api.resend_verification_api, name="resend_verification"),
]

admin_urlpatterns = [
    path("users/", api.AdminUserListAPI.as_view(), name="admin_user_list"),
    path("users/<uuid:id>/", api.AdminUserUpdateAPI.as_view(), name="admin_user_update"),
]
