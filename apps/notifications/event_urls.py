# apps/notifications/event_urls.py
"""
URL configuration for the realtime event bridge, mounted at /api/events/.

Endpoints:
- GET  /api/events/                   - My unprocessed events
- POST /api/events/                   - Publish an event
- POST /api/events/{id}/processed/    - Mark an event processed
- POST /api/events/admin/cleanup/     - Purge processed events (admin)
- GET  /api/events/admin/stats/       - Event counts (admin)
"""
from django.urls import path
from . import api

app_name = 'events'

urlpatterns = [
    path('', api.RealtimeEventListCreateAPI.as_view(), name='event_list'),
    path('admin/cleanup/', api.AdminEventCleanupAPI.as_view(), name='admin_cleanup'),
    path('admin/stats/', api.AdminEventStatsAPI.as_view(), name='admin_stats'),
    path('<uuid:id>/processed/', api.RealtimeEventMarkProcessedAPI.as_view(), name='event_processed'),
]
