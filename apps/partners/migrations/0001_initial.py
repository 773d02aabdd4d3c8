import apps.partners.models
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Partner',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid_id', models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, help_text='UUID for API-safe exposure', unique=True)),
                ('company_name', models.CharField(max_length=200)),
                ('category', models.CharField(choices=[('rental_shop', 'Rental Shop'), ('tour_operator', 'Tour Operator'), ('hotel', 'Hotel / Guest House'), ('individual', 'Individual Owner'), ('other', 'Other')], default='rental_shop', max_length=30)),
                ('description', models.TextField(blank=True, default='')),
                ('tagline', models.CharField(blank=True, default='', max_length=255)),
                ('logo', models.URLField(blank=True, default='')),
                ('images', models.JSONField(blank=True, default=list, help_text='Image URLs')),
                ('specialties', models.JSONField(blank=True, default=list)),
                ('features', models.JSONField(blank=True, default=list)),
                ('years_active', models.PositiveIntegerField(default=0)),
                ('location', models.CharField(blank=True, default='', max_length=200)),
                ('address', models.CharField(blank=True, default='', max_length=255)),
                ('city', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('map_location', models.JSONField(blank=True, default=dict, help_text='{"name", "address", "place_id"} from the maps picker')),
                ('contact_email', models.EmailField(blank=True, default='', max_length=254)),
                ('contact_phone', models.CharField(blank=True, default='', max_length=30)),
                ('website', models.URLField(blank=True, default='')),
                ('business_hours', models.JSONField(blank=True, default=apps.partners.models.default_business_hours)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='pending', max_length=20)),
                ('verification_status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20)),
                ('verification_documents', models.JSONField(blank=True, default=list, help_text='Document URLs')),
                ('verification_notes', models.TextField(blank=True, default='')),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('bank_name', models.CharField(blank=True, default='', max_length=120)),
                ('bank_account_number', models.CharField(blank=True, default='', max_length=50)),
                ('bank_account_holder', models.CharField(blank=True, default='', max_length=120)),
                ('bank_branch_code', models.CharField(blank=True, default='', max_length=30)),
                ('total_earnings', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('pending_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('owner_earnings', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('pickup_earnings', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3)),
                ('review_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='partner_profile', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_partners', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'verification_status'], name='partners_pa_status_f5a625_idx'),
                    models.Index(fields=['city', 'status'], name='partners_pa_city_cd8bc0_idx'),
                ],
            },
        ),
    ]
