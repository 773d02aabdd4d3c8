# apps/chat/admin.py
from django.contrib import admin
from .models import ChatSession, ChatMessage, KnowledgeEntry


class ChatMessageInline(admin.TabularInline):
    model = ChatMessage
    extra = 0
    fields = ['sender', 'content', 'intent', 'confidence', 'rating', 'helpful', 'created_at']
    readonly_fields = fields


@admin.register(ChatSession)
class ChatSessionAdmin(admin.ModelAdmin):
    list_display = ['session_id', 'user', 'created_at', 'updated_at']
    search_fields = ['session_id', 'user__email']
    readonly_fields = ['session_id', 'context', 'metadata', 'created_at', 'updated_at']
    raw_id_fields = ['user']
    inlines = [ChatMessageInline]


@admin.register(KnowledgeEntry)
class KnowledgeEntryAdmin(admin.ModelAdmin):
    list_display = ['question', 'intent', 'category', 'priority', 'is_active', 'usage_count', 'last_used']
    list_filter = ['category', 'intent', 'is_active']
    list_editable = ['priority', 'is_active']
    search_fields = ['question', 'answer']
    readonly_fields = ['usage_count', 'last_used', 'created_at', 'updated_at']
    raw_id_fields = ['created_by']
