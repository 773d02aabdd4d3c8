# apps/chat/intents.py
"""
Keyword based intent detection and entity extraction for the chat widget.

Scoring per intent:
- +1 for every keyword found among the message tokens
- +2 for every phrase found in the message
- +2 when the intent is the conversation's current topic
- +1.5 when the intent is related to the current topic

Topic bonuses only apply when the message carries no keyword signal or
its strongest signal stays on the current topic, so a clear question
about something else switches topic.

The best score wins (earlier intents win ties). A message that scores
nothing is 'general'. Confidence is score / 6, capped at 1.
"""
import re

from apps.common.enums import BIKE_TYPES

GENERAL_INTENT = 'general'

INTENT_PATTERNS = {
    'greeting': {
        'keywords': ['hello', 'hi', 'hey'],
        'phrases': ['good morning', 'good afternoon', 'good evening'],
    },
    'find_bikes': {
        'keywords': ['find', 'search', 'show', 'browse', 'bike', 'bicycle', 'cycle'],
        'phrases': ['find bikes', 'show me bikes', 'search bikes', 'looking for'],
    },
    'check_availability': {
        'keywords': ['available', 'availability', 'free'],
        'phrases': ['is available', 'available bikes', 'check availability', 'can i book'],
    },
    'find_locations': {
        'keywords': ['location', 'place', 'area', 'where', 'destination'],
        'phrases': ['where can i rent', 'popular locations', 'which locations'],
    },
    'pricing_info': {
        'keywords': ['price', 'cost', 'pricing', 'rate', 'fee', 'charge', 'cheap', 'expensive'],
        'phrases': ['how much', 'rental rates'],
    },
    'cancel_booking': {
        'keywords': ['cancel', 'cancellation', 'refund'],
        'phrases': ['cancel booking', 'cancel my booking', 'cancellation policy'],
    },
    'booking_status': {
        'keywords': ['booking', 'reservation', 'status'],
        'phrases': ['my booking', 'booking status', 'check booking', 'my reservations'],
    },
    'booking_process': {
        'keywords': ['book', 'rent', 'hire', 'reserve', 'steps', 'process'],
        'phrases': ['how to book', 'how do i book', 'how to rent', 'booking process'],
    },
    'payment_methods': {
        'keywords': ['payment', 'pay', 'card', 'cash', 'installment'],
        'phrases': ['payment methods', 'how to pay', 'pay with', 'payment options'],
    },
    'safety_info': {
        'keywords': ['safety', 'helmet', 'insurance', 'protection', 'gear'],
        'phrases': ['safety gear', 'is it safe'],
    },
    'account_help': {
        'keywords': ['account', 'profile', 'login', 'password', 'signup', 'register'],
        'phrases': ['forgot password', 'change password', 'sign in', 'sign up', 'my account'],
    },
    'contact_support': {
        'keywords': ['support', 'contact', 'human', 'agent', 'complaint', 'problem'],
        'phrases': ['contact support', 'talk to', 'speak to', 'report a problem'],
    },
    'faq': {
        'keywords': ['help', 'faq', 'question'],
        'phrases': ['need help', 'frequently asked'],
    },
    'goodbye': {
        'keywords': ['bye', 'goodbye', 'thanks', 'thank'],
        'phrases': ['thank you', 'see you'],
    },
}

RELATED_INTENTS = [
    {'find_bikes', 'check_availability', 'pricing_info'},
    {'booking_status', 'cancel_booking'},
    {'booking_process', 'payment_methods'},
]

# Topics a bare follow-up should not fall back into
NON_CONTEXTUAL_INTENTS = {'greeting', 'goodbye', GENERAL_INTENT}

MAX_SCORE = 6

BIKE_TYPE_RE = re.compile(
    r'\b(%s)[\s-]+(?:bikes?|bicycles?|cycles?)\b' % '|'.join(option['value'] for option in BIKE_TYPES),
    re.IGNORECASE,
)
ISO_DATE_RE = re.compile(r'\b(\d{4}-\d{2}-\d{2})\b')
RELATIVE_DATE_RE = re.compile(r'\b(today|tomorrow|this weekend|next week|next month)\b', re.IGNORECASE)
PRICE_BETWEEN_RE = re.compile(r'\bbetween\s+(\d[\d,]*)\s+and\s+(\d[\d,]*)', re.IGNORECASE)
PRICE_RANGE_RE = re.compile(r'\b(\d[\d,]*)\s*(?:to|-)\s*(\d[\d,]*)\s*(?:rs|lkr|rupees)\b', re.IGNORECASE)
PRICE_MAX_RE = re.compile(r'\b(?:under|below|less than|cheaper than|max(?:imum)?)\s+(?:rs\.?\s*|lkr\s*)?(\d[\d,]*)', re.IGNORECASE)
PRICE_MIN_RE = re.compile(r'\b(?:over|above|more than|at least)\s+(?:rs\.?\s*|lkr\s*)?(\d[\d,]*)', re.IGNORECASE)
BOOKING_NUMBER_RE = re.compile(r'\b(BK-\d{8}-[A-Z0-9]{6})\b', re.IGNORECASE)
DURATION_RE = re.compile(r'\b(\d+)\s*(day|week|month)s?\b', re.IGNORECASE)
PLACE_RE = re.compile(r'\b(?:in|at|near|around)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?)')


def normalize(text):
    return re.sub(r'\s+', ' ', re.sub(r'[^\w\s]', ' ', text.lower())).strip()


def _stem(word):
    if len(word) > 3 and word.endswith('s') and not word.endswith('ss'):
        return word[:-1]
    return word


def _tokens(normalized):
    return {_stem(token) for token in normalized.split()}


def _related(first, second):
    return any(first in group and second in group for group in RELATED_INTENTS)


def _topic_bonus(intent, current_topic):
    if intent == current_topic:
        return 2
    if _related(current_topic, intent):
        return 1.5
    return 0


def detect_intent(message, current_topic=None):
    """Return (intent, confidence) for a message."""
    normalized = normalize(message)
    tokens = _tokens(normalized)
    padded = f' {normalized} '

    scores = {}
    for intent, pattern in INTENT_PATTERNS.items():
        score = sum(1 for keyword in pattern['keywords'] if _stem(keyword) in tokens)
        score += sum(2 for phrase in pattern['phrases'] if f' {phrase} ' in padded)
        scores[intent] = score

    if current_topic in NON_CONTEXTUAL_INTENTS:
        current_topic = None
    if current_topic:
        leader = max(scores, key=scores.get)
        if scores[leader] == 0 or _topic_bonus(leader, current_topic):
            for intent in scores:
                scores[intent] += _topic_bonus(intent, current_topic)

    best_intent = max(scores, key=scores.get)
    best_score = scores[best_intent]
    if best_score == 0:
        return GENERAL_INTENT, 0.1
    return best_intent, round(min(best_score / MAX_SCORE, 1.0), 2)


def _amount(raw):
    return int(raw.replace(',', ''))


def extract_price_range(message):
    match = PRICE_BETWEEN_RE.search(message) or PRICE_RANGE_RE.search(message)
    if match:
        low, high = sorted((_amount(match.group(1)), _amount(match.group(2))))
        return {'min': low, 'max': high}

    price_range = {}
    match = PRICE_MAX_RE.search(message)
    if match:
        price_range['max'] = _amount(match.group(1))
    match = PRICE_MIN_RE.search(message)
    if match:
        price_range['min'] = _amount(match.group(1))
    return price_range


def extract_location(message, locations=()):
    lowered = message.lower()
    # Longest names first so "Nuwara Eliya" wins over "Eliya"
    for name in sorted(locations, key=len, reverse=True):
        if re.search(r'\b%s\b' % re.escape(name.lower()), lowered):
            return name

    match = PLACE_RE.search(message)
    return match.group(1) if match else None


def extract_entities(message, locations=()):
    """
    Pull structured values out of a message. Only keys that were found
    are returned.
    """
    entities = {}

    location = extract_location(message, locations)
    if location:
        entities['location'] = location

    match = BIKE_TYPE_RE.search(message)
    if match:
        entities['bike_type'] = match.group(1).lower()

    dates = ISO_DATE_RE.findall(message) + [word.lower() for word in RELATIVE_DATE_RE.findall(message)]
    if dates:
        entities['dates'] = dates

    price_range = extract_price_range(message)
    if price_range:
        entities['price_range'] = price_range

    match = BOOKING_NUMBER_RE.search(message)
    if match:
        entities['booking_number'] = match.group(1).upper()

    match = DURATION_RE.search(message)
    if match:
        entities['duration'] = {'value': int(match.group(1)), 'unit': match.group(2).lower()}

    return entities


def analyze_message(message, context=None, locations=()):
    """
    Detect the intent of a message in the light of the conversation so far.

    Entities collected earlier carry over while the conversation stays on
    the same or a related topic. Newer values replace older ones.
    """
    context = context or {}
    current_topic = context.get('current_topic')

    intent, confidence = detect_intent(message, current_topic)
    current_entities = extract_entities(message, locations)

    if current_topic and (intent == current_topic or _related(current_topic, intent)):
        entities = {**context.get('collected_entities', {}), **current_entities}
    else:
        entities = dict(current_entities)

    return {
        'intent': intent,
        'confidence': confidence,
        'entities': entities,
        'current_entities': current_entities,
    }
