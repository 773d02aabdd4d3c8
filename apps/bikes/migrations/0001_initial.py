import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('partners', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120, unique=True)),
                ('region', models.CharField(blank=True, db_index=True, default='', max_length=120)),
                ('description', models.TextField(blank=True, default='')),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('popular', models.BooleanField(db_index=True, default=False)),
                ('image', models.URLField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Bike',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid_id', models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, help_text='UUID for API-safe exposure', unique=True)),
                ('name', models.CharField(max_length=150)),
                ('bike_type', models.CharField(choices=[('city', 'City Bike'), ('mountain', 'Mountain Bike'), ('road', 'Road Bike'), ('hybrid', 'Hybrid Bike'), ('electric', 'Electric Bike'), ('touring', 'Touring Bike'), ('folding', 'Folding Bike'), ('cruiser', 'Cruiser')], db_index=True, max_length=20)),
                ('description', models.TextField(blank=True, default='')),
                ('location', models.CharField(db_index=True, max_length=120)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('price_per_day', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('price_per_week', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('price_per_month', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('features', models.JSONField(blank=True, default=list)),
                ('specifications', models.JSONField(blank=True, default=dict, help_text='frame_size, gears, weight, max_rider_weight, brake_type, tire_size')),
                ('images', models.JSONField(blank=True, default=list, help_text='Image URLs')),
                ('is_available', models.BooleanField(db_index=True, default=True)),
                ('unavailable_reason', models.CharField(blank=True, default='', max_length=255)),
                ('unavailable_dates', models.JSONField(blank=True, default=list, help_text='ISO dates (YYYY-MM-DD)')),
                ('condition', models.CharField(choices=[('excellent', 'Excellent'), ('good', 'Good'), ('fair', 'Fair')], default='good', max_length=20)),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3)),
                ('review_count', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('partner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bikes', to='partners.partner')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['partner', 'is_active'], name='bikes_bike_partner_dfa8b2_idx'),
                    models.Index(fields=['location', 'bike_type'], name='bikes_bike_locatio_4a7c9e_idx'),
                    models.Index(fields=['price_per_day'], name='bikes_bike_price_p_908cb8_idx'),
                ],
            },
        ),
    ]
