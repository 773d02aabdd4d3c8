# apps/chat/services.py
import logging
from functools import reduce
from operator import or_

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Max, Min, Q

from apps.bikes.models import Bike, Location
from apps.bikes.services import BikeService
from apps.bookings.models import Booking
from apps.support.models import FAQ
from .intents import INTENT_PATTERNS, analyze_message, normalize
from .models import ChatMessage, ChatSession, KnowledgeEntry

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
RESULT_LIMIT = 5
HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 50
MAX_SUGGESTIONS = 10

SUGGESTIONS = {
    'general': [
        'Check bike availability',
        'View popular locations',
        'How to book a bike?',
        'What are the rental rates?',
    ],
    'booking': [
        'How do I make a booking?',
        'Can I cancel my booking?',
        'What payment methods do you accept?',
        'What is the status of my booking?',
        'How do I contact the bike partner?',
    ],
    'bikes': [
        'What types of bikes are available?',
        'Show me mountain bikes',
        'Electric bikes in Colombo',
        'Bikes under 2000 per day',
        'How to choose the right bike?',
    ],
    'locations': [
        'Popular bike rental locations',
        'Bikes in Colombo',
        'Where can I rent a bike?',
        'Beach locations',
    ],
    'support': [
        'Contact customer support',
        'Report a problem',
        'Account help',
        'Payment issues',
    ],
}

INTENT_SUGGESTIONS = {
    'find_bikes': ['Filter by location', 'Check availability', 'What are the rental rates?'],
    'check_availability': ['Book now', 'Check other dates', 'Show me electric bikes'],
    'find_locations': ['Bikes in Colombo', 'Show me mountain bikes'],
    'pricing_info': ['Compare bikes', 'View packages', 'How to book a bike?'],
    'booking_status': ['Can I cancel my booking?', 'Contact customer support'],
}

DEFAULT_SUGGESTIONS = ['Find bikes', 'Check locations', 'View bookings', 'Get help']

FALLBACK_REPLIES = {
    'greeting': "Hi! I can help you find bikes, check prices and follow up on your bookings.",
    'goodbye': "Thanks for chatting. Have a great ride!",
    'booking_process': (
        "Pick a bike, choose your dates and package, and send a booking request. "
        "Once the partner confirms, pay the initial installment to secure it."
    ),
    'payment_methods': (
        "You can pay by card, cash, bank transfer or online wallet. "
        "An initial installment secures the booking and the rest is paid before pickup."
    ),
    'cancel_booking': (
        "You can cancel a booking from your bookings page before the rental starts. "
        "Any refund is handled by our team."
    ),
    'safety_info': "Every booking includes rental insurance. Many partners also provide helmets and locks.",
    'account_help': "You can manage your profile and change your password from your account settings.",
    'faq': "Ask me anything about bikes, bookings or payments, or browse our FAQs.",
    'general': "I'm here to help you with bike rentals! What can I assist you with today?",
}


class ChatbotService:
    """Rule based chat widget answering from bikes, bookings and curated knowledge."""

    @staticmethod
    def get_session(session_id, user=None):
        """
        Raises:
            ChatSession.DoesNotExist: If there is no such session
            PermissionError: If the session belongs to someone else
        """
        session = ChatSession.objects.get(session_id=session_id)
        if not session.is_visible_to(user):
            raise PermissionError("You do not have access to this chat session.")
        return session

    @classmethod
    def get_or_create_session(cls, user=None, session_id=None, metadata=None):
        if session_id:
            try:
                return cls.get_session(session_id, user)
            except ChatSession.DoesNotExist:
                pass

        session = ChatSession.objects.create(
            user=user if user is not None and user.is_authenticated else None,
            metadata=metadata or {},
        )
        logger.info(f"[CHAT_SESSION_CREATED] session={session.session_id} user={getattr(session.user, 'email', None)}")
        return session

    @classmethod
    def process_message(cls, content, user=None, session_id=None, metadata=None):
        """
        Answer one message and record both sides of the exchange.

        Raises:
            ValueError: If the message is empty or too long
            PermissionError: If the session belongs to someone else
        """
        content = (content or '').strip()
        if not content:
            raise ValueError("Message cannot be empty.")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters.")

        session = cls.get_or_create_session(user, session_id, metadata)
        locations = list(Location.objects.values_list('name', flat=True))
        analysis = analyze_message(content, session.context, locations)
        intent, entities = analysis['intent'], analysis['entities']

        if user is None or not user.is_authenticated:
            user = session.user
        reply = cls.build_reply(intent, entities, content, user)

        with transaction.atomic():
            ChatMessage.objects.create(
                session=session,
                sender=ChatMessage.SENDER_USER,
                content=content,
                intent=intent,
                confidence=analysis['confidence'],
                entities=analysis['current_entities'],
            )
            bot_message = ChatMessage.objects.create(
                session=session,
                sender=ChatMessage.SENDER_BOT,
                content=reply['message'],
                intent=intent,
                confidence=analysis['confidence'],
                entities=entities,
                data=reply.get('data', []),
            )
            session.context = {
                **session.context,
                'current_topic': intent,
                'collected_entities': entities,
            }
            session.save(update_fields=['context', 'updated_at'])

        logger.info(
            f"[CHAT_MESSAGE] session={session.session_id} intent={intent} "
            f"confidence={analysis['confidence']} results={len(reply.get('data', []))}"
        )

        return {
            'session_id': session.session_id,
            'message_id': bot_message.message_id,
            'response': {
                'message': reply['message'],
                'intent': intent,
                'confidence': analysis['confidence'],
                'entities': entities,
                'suggestions': reply.get('suggestions') or INTENT_SUGGESTIONS.get(intent, DEFAULT_SUGGESTIONS),
                'data': reply.get('data', []),
                'actions': reply.get('actions', []),
                'needs_human_support': reply.get('needs_human_support', False),
            },
            'context': session.context,
        }

    # ========== REPLIES ==========

    @classmethod
    def build_reply(cls, intent, entities, content, user=None):
        if intent in ('find_bikes', 'check_availability'):
            return cls._bike_reply(entities)
        if intent == 'find_locations':
            return cls._location_reply()
        if intent == 'pricing_info':
            return cls._pricing_reply(entities)
        if intent == 'booking_status':
            return cls._booking_reply(entities, user)
        if intent == 'contact_support':
            return {
                'message': "I'll connect you with our support team. Open a support ticket and we will get back to you.",
                'actions': [{'type': 'open_ticket'}],
                'needs_human_support': True,
            }
        return cls._knowledge_reply(intent, content)

    @staticmethod
    def _bike_reply(entities):
        params = {'available': True}
        if entities.get('bike_type'):
            params['type'] = entities['bike_type']
        if entities.get('location'):
            params['location'] = entities['location']
        price_range = entities.get('price_range') or {}
        if 'min' in price_range:
            params['min_price'] = price_range['min']
        if 'max' in price_range:
            params['max_price'] = price_range['max']

        bikes = list(BikeService.search(params)[:RESULT_LIMIT])
        data = [
            {
                'id': str(bike.uuid_id),
                'name': bike.name,
                'type': bike.bike_type,
                'location': bike.location,
                'price_per_day': str(bike.price_per_day),
            }
            for bike in bikes
        ]

        where = f" in {entities['location']}" if entities.get('location') else ''
        if not bikes:
            return {
                'message': f"I couldn't find any available bikes{where} matching that. Try another location or bike type.",
                'suggestions': ['View popular locations', 'Show me all bikes'],
            }
        return {
            'message': f"I found {len(bikes)} available bike{'s' if len(bikes) != 1 else ''}{where}.",
            'data': data,
            'actions': [{'type': 'view_bikes', 'filters': params}],
        }

    @staticmethod
    def _location_reply():
        locations = list(Location.objects.order_by('-popular', 'name')[:RESULT_LIMIT])
        if locations:
            data = [{'name': location.name, 'region': location.region, 'popular': location.popular}
                    for location in locations]
        else:
            names = (Bike.objects.filter(is_active=True)
                     .order_by('location').values_list('location', flat=True).distinct()[:RESULT_LIMIT])
            data = [{'name': name, 'region': '', 'popular': False} for name in names]

        if not data:
            return {'message': "We don't have any rental locations listed yet."}
        return {
            'message': "You can rent bikes in " + ', '.join(item['name'] for item in data) + '.',
            'data': data,
        }

    @staticmethod
    def _pricing_reply(entities):
        queryset = Bike.objects.filter(is_active=True)
        bike_type = entities.get('bike_type')
        if bike_type:
            queryset = queryset.filter(bike_type=bike_type)
        if entities.get('location'):
            queryset = queryset.filter(location__iexact=entities['location'])

        stats = queryset.aggregate(low=Min('price_per_day'), high=Max('price_per_day'), average=Avg('price_per_day'))
        label = f"{bike_type} bikes" if bike_type else "bikes"
        if stats['low'] is None:
            return {'message': f"I don't have prices for {label} right now."}

        currency = settings.BOOKING_CURRENCY
        average = round(stats['average'], 2)
        return {
            'message': (
                f"Daily rates for {label} range from {currency} {stats['low']} to {currency} {stats['high']}, "
                f"averaging {currency} {average}. Weekly and monthly packages are cheaper per day."
            ),
            'data': [{
                'bike_type': bike_type,
                'min_price_per_day': str(stats['low']),
                'max_price_per_day': str(stats['high']),
                'avg_price_per_day': str(average),
                'currency': currency,
            }],
        }

    @staticmethod
    def _booking_reply(entities, user=None):
        if user is None or not user.is_authenticated:
            return {
                'message': "Please log in so I can look up your bookings.",
                'actions': [{'type': 'login'}],
            }

        bookings = Booking.objects.filter(customer=user).select_related('bike')
        if entities.get('booking_number'):
            bookings = bookings.filter(booking_number=entities['booking_number'])
        bookings = list(bookings.order_by('-created_at')[:3])

        if not bookings:
            if entities.get('booking_number'):
                return {'message': f"I couldn't find booking {entities['booking_number']} on your account."}
            return {'message': "You don't have any bookings yet."}

        data = [
            {
                'booking_number': booking.booking_number,
                'bike': booking.bike.name,
                'status': booking.status,
                'payment_status': booking.payment_status,
                'start_date': booking.start_date.isoformat(),
                'end_date': booking.end_date.isoformat(),
            }
            for booking in bookings
        ]
        lines = [f"{booking.booking_number} ({booking.bike.name}) is {booking.get_status_display().lower()}"
                 for booking in bookings]
        return {'message': '. '.join(lines) + '.', 'data': data}

    @classmethod
    def _knowledge_reply(cls, intent, content):
        entry = cls.search_knowledge(intent, content)
        if entry is not None:
            return {
                'message': entry.answer,
                'actions': [{'type': 'knowledge_answer', 'category': entry.category}],
            }

        faq = cls.search_faqs(content)
        if faq is not None:
            return {
                'message': faq.answer,
                'actions': [{'type': 'faq_answer', 'category': faq.category}],
            }

        return {'message': FALLBACK_REPLIES.get(intent, FALLBACK_REPLIES['general'])}

    @staticmethod
    def _search_terms(content):
        return [word for word in normalize(content).split() if len(word) > 3]

    @classmethod
    def search_knowledge(cls, intent, content):
        """
        Best active entry for the intent, otherwise the best entry whose
        keywords or question match the message. Usage is recorded.
        """
        entries = KnowledgeEntry.objects.filter(is_active=True)
        entry = entries.filter(intent=intent).first() if intent else None

        if entry is None:
            terms = cls._search_terms(content)
            if terms:
                query = reduce(or_, (Q(keywords__icontains=term) | Q(question__icontains=term) for term in terms))
                entry = entries.filter(query).first()

        if entry is not None:
            entry.record_usage()
        return entry

    @classmethod
    def search_faqs(cls, content):
        terms = cls._search_terms(content)
        if not terms:
            return None
        query = reduce(or_, (Q(question__icontains=term) for term in terms))
        return FAQ.objects.filter(is_active=True).filter(query).first()

    # ========== HISTORY & FEEDBACK ==========

    @classmethod
    def get_history(cls, session_id, user=None, limit=HISTORY_LIMIT):
        """Latest `limit` messages of a session, oldest first."""
        session = cls.get_session(session_id, user)
        limit = max(1, min(limit, MAX_HISTORY_LIMIT))
        messages = list(session.messages.order_by('-created_at', '-id')[:limit])
        messages.reverse()
        return session, messages

    @classmethod
    def clear_history(cls, session_id, user=None):
        session = cls.get_session(session_id, user)
        message_count = session.messages.count()
        session.delete()

        logger.info(f"[CHAT_CLEARED] session={session_id} messages={message_count}")
        return message_count

    @classmethod
    def update_feedback(cls, session_id, message_id, user=None, rating=None, helpful=None, comment=None):
        """
        Raises:
            ChatSession.DoesNotExist / ChatMessage.DoesNotExist: Unknown session or message
            PermissionError: If the session belongs to someone else
            ValueError: If the message is not a bot reply
        """
        session = cls.get_session(session_id, user)
        message = session.messages.get(message_id=message_id)
        if message.sender != ChatMessage.SENDER_BOT:
            raise ValueError("Feedback can only be given on bot replies.")

        update_fields = []
        if rating is not None:
            message.rating = rating
            update_fields.append('rating')
        if helpful is not None:
            message.helpful = helpful
            update_fields.append('helpful')
        if comment is not None:
            message.feedback_comment = comment
            update_fields.append('feedback_comment')
        if update_fields:
            message.save(update_fields=update_fields)

        logger.info(f"[CHAT_FEEDBACK] session={session_id} message={message_id} rating={message.rating} helpful={message.helpful}")
        return message

    # ========== META ==========

    @staticmethod
    def get_suggestions(category='general', limit=5):
        suggestions = SUGGESTIONS.get(category, SUGGESTIONS['general'])
        limit = max(1, min(limit, MAX_SUGGESTIONS))
        return suggestions[:limit]

    @staticmethod
    def get_status():
        return {
            'online': True,
            'supported_intents': list(INTENT_PATTERNS),
            'suggestion_categories': list(SUGGESTIONS),
            'knowledge_entries': KnowledgeEntry.objects.filter(is_active=True).count(),
            'max_message_length': MAX_MESSAGE_LENGTH,
            'rate_limit': {'requests_per_hour': settings.CHATBOT_RATE_LIMIT},
        }
