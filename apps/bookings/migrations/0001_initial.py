import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('bikes', '0001_initial'),
        ('partners', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid_id', models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, help_text='UUID for API-safe exposure', unique=True)),
                ('booking_number', models.CharField(editable=False, max_length=20, unique=True)),
                ('package', models.CharField(choices=[('day', 'Daily'), ('week', 'Weekly'), ('month', 'Monthly')], max_length=10)),
                ('start_date', models.DateField(db_index=True)),
                ('end_date', models.DateField()),
                ('pickup_location', models.CharField(max_length=200)),
                ('dropoff_location', models.CharField(max_length=200)),
                ('base_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('insurance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('extras', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='LKR', max_length=3)),
                ('additional_charges', models.JSONField(blank=True, default=list, help_text='Drop-off charges [{type, amount, description}], collected with the remaining installment')),
                ('status', models.CharField(choices=[('requested', 'Requested'), ('confirmed', 'Confirmed'), ('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='requested', max_length=20)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('partial_paid', 'Partially Paid'), ('fully_paid', 'Fully Paid'), ('refunded', 'Refunded'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20)),
                ('notes', models.TextField(blank=True, default='')),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('activated_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('bike', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='bikes.bike')),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cancelled_bookings', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bookings', to=settings.AUTH_USER_MODEL)),
                ('dropoff_partner', models.ForeignKey(blank=True, help_text='Partner the bike is returned to (defaults to the owner)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dropoff_bookings', to='partners.partner')),
                ('partner', models.ForeignKey(help_text='Owner partner of the bike', on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='partners.partner')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['bike', 'status', 'start_date', 'end_date'], name='bookings_bo_bike_id_d95677_idx'),
                    models.Index(fields=['customer', 'status'], name='bookings_bo_custome_0cbf77_idx'),
                    models.Index(fields=['partner', 'status'], name='bookings_bo_partner_aca0be_idx'),
                    models.Index(fields=['dropoff_partner', 'status'], name='bookings_bo_dropoff_3d2b95_idx'),
                    models.Index(fields=['status', 'start_date'], name='idx_booking_due_check'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookingAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('created', 'Created'), ('confirmed', 'Confirmed'), ('rejected', 'Rejected'), ('activated', 'Activated'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('expired', 'Expired'), ('payment', 'Payment'), ('charges_added', 'Additional Charges Added'), ('admin_override', 'Admin Override')], max_length=20)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='bookings.booking')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='booking_audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['booking', 'action'], name='bookings_bo_booking_bf1f84_idx'),
                    models.Index(fields=['user', 'action'], name='bookings_bo_user_id_5ce3e1_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ('comment', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('published', 'Published'), ('pending', 'Pending'), ('rejected', 'Rejected')], db_index=True, default='published', max_length=20)),
                ('moderation_notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bike', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='bikes.bike')),
                ('booking', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='review', to='bookings.booking')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to=settings.AUTH_USER_MODEL)),
                ('partner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='partners.partner')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['bike', 'status'], name='bookings_re_bike_id_7bb5ff_idx'),
                    models.Index(fields=['partner', 'status'], name='bookings_re_partner_e1ee15_idx'),
                ],
            },
        ),
    ]
