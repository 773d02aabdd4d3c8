# apps/notifications/push.py
"""
FCM push delivery.

Multicasts to a user's active tokens and deactivates tokens that FCM
reports as unregistered or invalid. Every call is a no-op while
FCM_ENABLED is off.
"""
import logging
from django.conf import settings
from django.utils import timezone
from firebase_admin import messaging
from firebase_admin import exceptions as firebase_exceptions

from .firebase import get_firebase_app
from .models import FCMToken, Notification

logger = logging.getLogger(__name__)

# FCM accepts at most 500 tokens per multicast
MAX_MULTICAST_TOKENS = 500

REJECTED_TOKEN_ERRORS = (
    messaging.UnregisteredError,
    messaging.SenderIdMismatchError,
    firebase_exceptions.InvalidArgumentError,
)


class FCMService:

    @staticmethod
    def is_enabled():
        return bool(getattr(settings, 'FCM_ENABLED', False))

    @staticmethod
    def _stringify(data):
        """FCM data payloads only carry string values."""
        return {str(key): '' if value is None else str(value) for key, value in (data or {}).items()}

    @classmethod
    def send_to_tokens(cls, tokens, title, body, data=None):
        """
        Send one notification to a list of FCM tokens.

        Returns:
            dict: success, success_count, failure_count, invalid_tokens
        """
        result = {
            'success': False,
            'success_count': 0,
            'failure_count': 0,
            'invalid_tokens': [],
        }

        if not cls.is_enabled():
            result['message'] = 'FCM is disabled'
            return result

        tokens = list(tokens)
        if not tokens:
            result['message'] = 'No active tokens'
            return result

        try:
            app = get_firebase_app()
        except Exception as e:
            logger.error(f"[FCM_SEND_FAILED] stage=init error={e}")
            result['message'] = 'Firebase initialization failed'
            return result

        if app is None:
            result['message'] = 'Firebase is not configured'
            return result

        payload = cls._stringify(data)
        payload.setdefault('timestamp', timezone.now().isoformat())

        for start in range(0, len(tokens), MAX_MULTICAST_TOKENS):
            batch = tokens[start:start + MAX_MULTICAST_TOKENS]
            message = messaging.MulticastMessage(
                tokens=batch,
                notification=messaging.Notification(title=title, body=body),
                data=payload,
            )
            try:
                response = messaging.send_each_for_multicast(message, app=app)
            except Exception as e:
                logger.error(f"[FCM_SEND_FAILED] stage=multicast tokens={len(batch)} error={e}")
                result['failure_count'] += len(batch)
                continue

            result['success_count'] += response.success_count
            result['failure_count'] += response.failure_count

            for token, send_response in zip(batch, response.responses):
                if send_response.success:
                    continue
                if isinstance(send_response.exception, REJECTED_TOKEN_ERRORS):
                    result['invalid_tokens'].append(token)
                else:
                    logger.warning(f"[FCM_SEND_FAILED] error={send_response.exception}")

        if result['invalid_tokens']:
            deactivated = FCMToken.objects.filter(
                token__in=result['invalid_tokens']
            ).update(is_active=False, updated_at=timezone.now())
            logger.info(f"[FCM_TOKENS_DEACTIVATED] count={deactivated}")

        result['success'] = result['success_count'] > 0
        return result

    @classmethod
    def send_to_user(cls, user, title, body, data=None):
        """Multicast to every active token the user has registered."""
        if not cls.is_enabled():
            return {'success': False, 'success_count': 0, 'failure_count': 0,
                    'invalid_tokens': [], 'message': 'FCM is disabled'}

        tokens = list(
            FCMToken.objects.filter(user=user, is_active=True).values_list('token', flat=True)
        )
        result = cls.send_to_tokens(tokens, title, body, data)

        if result['success_count']:
            FCMToken.objects.filter(
                user=user, is_active=True, token__in=tokens
            ).exclude(
                token__in=result['invalid_tokens']
            ).update(last_used=timezone.now())

        logger.info(
            f"[FCM_SEND] user={user.id} sent={result['success_count']} "
            f"failed={result['failure_count']}"
        )
        return result

    @classmethod
    def send_notification(cls, notification):
        """Push a stored Notification and record the push channel when delivered."""
        if not cls.is_enabled():
            return None

        result = cls.send_to_user(
            notification.recipient,
            notification.title,
            notification.message,
            data={
                'type': notification.notification_type,
                'category': notification.category,
                'notification_id': notification.id,
                'booking_id': notification.booking.uuid_id if notification.booking_id else None,
            },
        )
        if result['success']:
            notification.add_channel(Notification.CHANNEL_PUSH)
        return result
