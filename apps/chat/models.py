# apps/chat/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone
import uuid

from apps.common.enums import SUPPORT_CATEGORIES, as_choices


class ChatSession(models.Model):
    """
    One chat widget conversation.

    Anonymous visitors are identified by session_id alone. When a user is
    attached only that user (or an admin) may read or clear the session.

    context holds the running conversation state: current_topic and
    collected_entities.
    """

    session_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='chat_sessions',
    )
    context = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"Chat {self.session_id}"

    def is_visible_to(self, user):
        if self.user_id is None:
            return True
        if user is None or not user.is_authenticated:
            return False
        return self.user_id == user.id or user.is_admin_user


class ChatMessage(models.Model):
    SENDER_USER = 'user'
    SENDER_BOT = 'bot'

    SENDER_CHOICES = (
        (SENDER_USER, 'User'),
        (SENDER_BOT, 'Bot'),
    )

    message_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True, db_index=True)
    session = models.ForeignKey(ChatSession, on_delete=models.CASCADE, related_name='messages')
    sender = models.CharField(max_length=10, choices=SENDER_CHOICES)
    content = models.TextField()
    intent = models.CharField(max_length=50, blank=True, default='')
    confidence = models.FloatField(default=0)
    entities = models.JSONField(default=dict, blank=True)
    data = models.JSONField(default=list, blank=True)

    # Feedback is only collected on bot replies
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    helpful = models.BooleanField(null=True, blank=True)
    feedback_comment = models.CharField(max_length=500, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.sender}: {self.content[:50]}"


class KnowledgeEntry(models.Model):
    """Curated answer the chatbot can give for an intent or keyword."""

    category = models.CharField(max_length=20, choices=as_choices(SUPPORT_CATEGORIES), default='other')
    question = models.CharField(max_length=300)
    answer = models.TextField()
    keywords = models.JSONField(default=list, blank=True)
    intent = models.CharField(max_length=50, blank=True, default='', db_index=True)
    priority = models.PositiveSmallIntegerField(
        default=5,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    is_active = models.BooleanField(default=True, db_index=True)
    usage_count = models.PositiveIntegerField(default=0)
    last_used = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-priority', '-usage_count', 'id']
        verbose_name = 'knowledge entry'
        verbose_name_plural = 'knowledge entries'

    def __str__(self):
        return self.question

    def record_usage(self):
        KnowledgeEntry.objects.filter(pk=self.pk).update(
            usage_count=F('usage_count') + 1,
            last_used=timezone.now(),
        )
