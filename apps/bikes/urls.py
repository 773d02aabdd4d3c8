# apps/bikes/urls.py
from django.urls import path
from . import api

app_name = 'bikes'

urlpatterns = [
    path('', api.BikeListCreateAPI.as_view(), name='bike_list'),
    path('mine/', api.MyBikesAPI.as_view(), name='my_bikes'),

    # Locations
    path('locations/', api.LocationListCreateAPI.as_view(), name='location_list'),
    path('locations/<int:pk>/', api.LocationDetailAPI.as_view(), name='location_detail'),

    path('<uuid:id>/', api.BikeDetailAPI.as_view(), name='bike_detail'),
    path('<uuid:id>/availability/', api.BikeAvailabilityAPI.as_view(), name='bike_availability'),
    path('<uuid:id>/check-availability/', api.BikeAvailabilityCheckAPI.as_view(), name='bike_check_availability'),
    path('<uuid:id>/quote/', api.BikeQuoteAPI.as_view(), name='bike_quote'),
]
