# apps/chat/serializers.py
from rest_framework import serializers

from .models import ChatMessage, KnowledgeEntry
from .intents import GENERAL_INTENT, INTENT_PATTERNS
from .services import MAX_MESSAGE_LENGTH, SUGGESTIONS


class ChatMessageInputSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=MAX_MESSAGE_LENGTH)
    session_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    metadata = serializers.DictField(required=False, default=dict)


class ChatMessageSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='message_id', read_only=True)

    class Meta:
        model = ChatMessage
        fields = [
            'id',
            'sender',
            'content',
            'intent',
            'confidence',
            'entities',
            'data',
            'rating',
            'helpful',
            'feedback_comment',
            'created_at',
        ]
        read_only_fields = fields


class FeedbackSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    helpful = serializers.BooleanField(required=False)
    comment = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide a rating, helpful flag or comment.")
        return attrs


class SuggestionQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=list(SUGGESTIONS), default='general')
    limit = serializers.IntegerField(min_value=1, max_value=10, default=5)


class KnowledgeEntrySerializer(serializers.ModelSerializer):
    priority = serializers.IntegerField(min_value=1, max_value=10, default=5)

    class Meta:
        model = KnowledgeEntry
        fields = [
            'id',
            'category',
            'question',
            'answer',
            'keywords',
            'intent',
            'priority',
            'is_active',
            'usage_count',
            'last_used',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'usage_count', 'last_used', 'created_at', 'updated_at']

    def validate_intent(self, value):
        if value and value != GENERAL_INTENT and value not in INTENT_PATTERNS:
            raise serializers.ValidationError(f"Unknown intent \"{value}\".")
        return value

    def validate_keywords(self, value):
        if not isinstance(value, list) or not all(isinstance(keyword, str) for keyword in value):
            raise serializers.ValidationError("Keywords must be a list of strings.")
        return sorted({keyword.strip().lower() for keyword in value if keyword.strip()})
