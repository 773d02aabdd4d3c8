# apps/partners/urls.py
from django.urls import path
from . import api

app_name = 'partners'

urlpatterns = [
    path('', api.PartnerListAPI.as_view(), name='partner_list'),
    path('register/', api.PartnerRegisterAPI.as_view(), name='partner_register'),
    path('me/', api.MyPartnerAPI.as_view(), name='my_partner'),

    # Admin
    path('admin/', api.AdminPartnerListAPI.as_view(), name='admin_partner_list'),
    path('admin/<uuid:id>/verify/', api.AdminPartnerVerifyAPI.as_view(), name='admin_partner_verify'),
    path('admin/<uuid:id>/status/', api.AdminPartnerStatusAPI.as_view(), name='admin_partner_status'),

    path('<uuid:id>/', api.PartnerDetailAPI.as_view(), name='partner_detail'),
    path('<uuid:id>/bikes/', api.PartnerBikesAPI.as_view(), name='partner_bikes'),
    path('<uuid:id>/bank-details/', api.PartnerBankDetailsAPI.as_view(), name='partner_bank_details'),
]
