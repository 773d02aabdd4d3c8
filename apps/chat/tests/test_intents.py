# apps/chat/tests/test_intents.py
"""
Tests for chat intent detection and entity extraction.
"""
from django.test import SimpleTestCase

from apps.chat.intents import analyze_message, detect_intent, extract_entities


class DetectIntentTestCase(SimpleTestCase):

    def test_keyword_match(self):
        self.assertEqual(detect_intent('Hello there'), ('greeting', 0.17))

    def test_phrase_outweighs_keyword(self):
        intent, confidence = detect_intent('How much does a road bike cost?')

        self.assertEqual(intent, 'pricing_info')
        self.assertEqual(confidence, 0.5)

    def test_plural_keywords_match(self):
        intent, _ = detect_intent('Where can I rent bikes?')

        self.assertEqual(intent, 'find_locations')

    def test_unmatched_message_is_general(self):
        self.assertEqual(detect_intent('asdf qwerty'), ('general', 0.1))

    def test_cancel_wins_over_status(self):
        intent, _ = detect_intent('I want to cancel my booking')

        self.assertEqual(intent, 'cancel_booking')

    def test_follow_up_continues_topic(self):
        self.assertEqual(detect_intent('What about Kandy?', current_topic='find_bikes'), ('find_bikes', 0.33))

    def test_clear_question_switches_topic(self):
        intent, _ = detect_intent('How do I pay?', current_topic='find_bikes')

        self.assertEqual(intent, 'payment_methods')

    def test_greeting_topic_does_not_stick(self):
        self.assertEqual(detect_intent('ok', current_topic='greeting'), ('general', 0.1))

    def test_confidence_is_capped(self):
        _, confidence = detect_intent('my booking status, check booking, my reservations')

        self.assertEqual(confidence, 1.0)


class ExtractEntitiesTestCase(SimpleTestCase):

    def test_search_entities(self):
        entities = extract_entities('Mountain bikes in Kandy under 2,000 for 3 days', locations=['Kandy', 'Galle'])

        self.assertEqual(entities, {
            'location': 'Kandy',
            'bike_type': 'mountain',
            'price_range': {'max': 2000},
            'duration': {'value': 3, 'unit': 'day'},
        })

    def test_unknown_place_after_preposition(self):
        entities = extract_entities('Electric bikes near Ella tomorrow')

        self.assertEqual(entities['location'], 'Ella')
        self.assertEqual(entities['bike_type'], 'electric')
        self.assertEqual(entities['dates'], ['tomorrow'])

    def test_longest_location_name_wins(self):
        entities = extract_entities('bikes in nuwara eliya', locations=['Eliya', 'Nuwara Eliya'])

        self.assertEqual(entities['location'], 'Nuwara Eliya')

    def test_price_between(self):
        entities = extract_entities('something between 3000 and 1000')

        self.assertEqual(entities['price_range'], {'min': 1000, 'max': 3000})

    def test_booking_number_and_iso_date(self):
        entities = extract_entities('is bk-20261019-ab12cd still on for 2026-11-02?')

        self.assertEqual(entities['booking_number'], 'BK-20261019-AB12CD')
        self.assertEqual(entities['dates'], ['2026-11-02'])

    def test_nothing_found(self):
        self.assertEqual(extract_entities('hello'), {})


class AnalyzeMessageTestCase(SimpleTestCase):

    def test_entities_carry_over_on_same_topic(self):
        context = {'current_topic': 'find_bikes', 'collected_entities': {'bike_type': 'mountain'}}

        analysis = analyze_message('What about Kandy?', context, locations=['Kandy'])

        self.assertEqual(analysis['intent'], 'find_bikes')
        self.assertEqual(analysis['entities'], {'bike_type': 'mountain', 'location': 'Kandy'})
        self.assertEqual(analysis['current_entities'], {'location': 'Kandy'})

    def test_newer_values_replace_older(self):
        context = {'current_topic': 'find_bikes', 'collected_entities': {'location': 'Galle'}}

        analysis = analyze_message('Show me bikes in Kandy', context, locations=['Kandy', 'Galle'])

        self.assertEqual(analysis['entities']['location'], 'Kandy')

    def test_topic_switch_drops_collected_entities(self):
        context = {'current_topic': 'find_bikes', 'collected_entities': {'bike_type': 'mountain'}}

        analysis = analyze_message('How do I pay?', context)

        self.assertEqual(analysis['intent'], 'payment_methods')
        self.assertEqual(analysis['entities'], {})
