# apps/chat/api.py
"""
Chat widget API endpoints.

Endpoints:
1) POST   /api/chat/message/                          - Send a message (public, rate limited)
2) GET    /api/chat/history/{session_id}/             - Session history (?limit=, max 50)
3) DELETE /api/chat/history/{session_id}/             - Clear a session
4) POST   /api/chat/feedback/{session_id}/{message_id}/ - Rate a bot reply
5) GET    /api/chat/suggestions/                      - Quick replies (?category=, ?limit= max 10)
6) GET    /api/chat/status/                           - Chatbot status

Admin Endpoints:
7) GET|POST /api/chat/admin/knowledge/                - Knowledge base list/create
8) GET|PATCH|DELETE /api/chat/admin/knowledge/{pk}/   - Knowledge entry detail/update/delete

Sessions opened while logged in are private to that user. Anonymous
sessions are reachable by anyone holding the session id.
"""
import logging
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.decorators import rate_limit
from apps.accounts.permissions import IsAdmin
from .models import KnowledgeEntry
from .serializers import (
    ChatMessageInputSerializer,
    ChatMessageSerializer,
    FeedbackSerializer,
    KnowledgeEntrySerializer,
    SuggestionQuerySerializer,
)
from .services import HISTORY_LIMIT, ChatbotService

logger = logging.getLogger(__name__)


def _error_response(exc):
    if isinstance(exc, ObjectDoesNotExist):
        return Response({"success": False, "error": "Chat session or message not found"},
                        status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, PermissionError):
        return Response({"success": False, "error": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


@swagger_auto_schema(
    method="post",
    tags=["Chat"],
    operation_summary="Send Chat Message",
    operation_description="Answer a chat widget message. Omit session_id to start a new conversation.",
    request_body=ChatMessageInputSerializer,
)
@api_view(["POST"])
@permission_classes([AllowAny])
@rate_limit("chat", limit=settings.CHATBOT_RATE_LIMIT, period=3600)
def chat_message_api(request):
    serializer = ChatMessageInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"success": False, "error": "Invalid data", "errors": serializer.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )
    data = serializer.validated_data

    try:
        result = ChatbotService.process_message(
            data["message"],
            user=request.user,
            session_id=data["session_id"],
            metadata=data["metadata"],
        )
    except (PermissionError, ValueError) as e:
        return _error_response(e)

    return Response({"success": True, **result})


class ChatHistoryAPI(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        tags=["Chat"],
        operation_summary="Chat History",
        manual_parameters=[
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, default=HISTORY_LIMIT),
        ],
    )
    def get(self, request, session_id):
        try:
            limit = int(request.query_params.get('limit', HISTORY_LIMIT))
        except ValueError:
            limit = HISTORY_LIMIT

        try:
            session, messages = ChatbotService.get_history(session_id, request.user, limit=limit)
        except (ObjectDoesNotExist, PermissionError) as e:
            return _error_response(e)

        return Response({
            "success": True,
            "session_id": session.session_id,
            "context": session.context,
            "messages": ChatMessageSerializer(messages, many=True).data,
        })

    @swagger_auto_schema(tags=["Chat"], operation_summary="Clear Chat History")
    def delete(self, request, session_id):
        try:
            ChatbotService.clear_history(session_id, request.user)
        except (ObjectDoesNotExist, PermissionError) as e:
            return _error_response(e)

        return Response({"success": True, "message": "Chat history cleared successfully"})


class ChatFeedbackAPI(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        tags=["Chat"],
        operation_summary="Rate Bot Reply",
        request_body=FeedbackSerializer,
        responses={200: ChatMessageSerializer},
    )
    def post(self, request, session_id, message_id):
        serializer = FeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            message = ChatbotService.update_feedback(
                session_id,
                message_id,
                request.user,
                rating=data.get('rating'),
                helpful=data.get('helpful'),
                comment=data.get('comment'),
            )
        except (ObjectDoesNotExist, PermissionError, ValueError) as e:
            return _error_response(e)

        return Response(ChatMessageSerializer(message).data)


class ChatSuggestionsAPI(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(tags=["Chat"], operation_summary="Chat Suggestions", query_serializer=SuggestionQuerySerializer)
    def get(self, request):
        serializer = SuggestionQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        category = serializer.validated_data['category']

        return Response({
            "success": True,
            "category": category,
            "suggestions": ChatbotService.get_suggestions(category, serializer.validated_data['limit']),
        })


class ChatStatusAPI(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(tags=["Chat"], operation_summary="Chatbot Status")
    def get(self, request):
        return Response({"success": True, "data": ChatbotService.get_status()})


# ========== ADMIN ==========

class AdminKnowledgeListCreateAPI(generics.ListCreateAPIView):
    serializer_class = KnowledgeEntrySerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        tags=["Admin - Chat"],
        operation_summary="List Knowledge Entries",
        manual_parameters=[
            openapi.Parameter('intent', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Chat"], operation_summary="Create Knowledge Entry")
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def get_queryset(self):
        queryset = KnowledgeEntry.objects.all()
        for param in ('intent', 'category'):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset

    def perform_create(self, serializer):
        entry = serializer.save(created_by=self.request.user)
        logger.info(f"[KNOWLEDGE_CREATED] entry={entry.pk} intent={entry.intent or '-'} by={self.request.user.email}")


class AdminKnowledgeDetailAPI(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = KnowledgeEntrySerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    queryset = KnowledgeEntry.objects.all()
    http_method_names = ['get', 'patch', 'delete']

    @swagger_auto_schema(tags=["Admin - Chat"], operation_summary="Knowledge Entry Detail")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Chat"], operation_summary="Update Knowledge Entry")
    def patch(self, request, *args, **kwargs):
        return super().patch(request, *args, **kwargs)

    @swagger_auto_schema(tags=["Admin - Chat"], operation_summary="Delete Knowledge Entry")
    def delete(self, request, *args, **kwargs):
        return super().delete(request, *args, **kwargs)
