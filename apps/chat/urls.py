# apps/chat/urls.py
from django.urls import path
from .api import (
    chat_message_api,
    ChatHistoryAPI,
    ChatFeedbackAPI,
    ChatSuggestionsAPI,
    ChatStatusAPI,
    AdminKnowledgeListCreateAPI,
    AdminKnowledgeDetailAPI,
)

app_name = 'chat'

urlpatterns = [
    path('message/', chat_message_api, name='message'),
    path('history/<uuid:session_id>/', ChatHistoryAPI.as_view(), name='history'),
    path('feedback/<uuid:session_id>/<uuid:message_id>/', ChatFeedbackAPI.as_view(), name='feedback'),
    path('suggestions/', ChatSuggestionsAPI.as_view(), name='suggestions'),
    path('status/', ChatStatusAPI.as_view(), name='status'),

    # Admin
    path('admin/knowledge/', AdminKnowledgeListCreateAPI.as_view(), name='admin_knowledge_list'),
    path('admin/knowledge/<int:pk>/', AdminKnowledgeDetailAPI.as_view(), name='admin_knowledge_detail'),
]
