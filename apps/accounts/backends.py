# apps/accounts/backends.py
from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailBackend(ModelBackend):
    """
    Authenticate using email instead of username.
    Suspended accounts are refused here; email verification is checked by the login API.
    """
    def authenticate(self, request, username=None, password=None, email=None, **kwargs):
        # Support both 'email' and 'username' parameters
        email = email or username

        if not email or not password:
            return None

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            # Run default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        if user.status == User.STATUS_SUSPENDED:
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
