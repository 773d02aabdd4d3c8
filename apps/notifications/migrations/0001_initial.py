import apps.notifications.models
import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('bookings', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('notification_type', models.CharField(choices=[('booking_created', 'Booking Created'), ('booking_created_for_owner', 'Booking Created For Owner'), ('new_dropoff', 'New Drop-off'), ('booking_accepted', 'Booking Accepted'), ('booking_rejected', 'Booking Rejected'), ('booking_activated', 'Booking Activated'), ('booking_completed', 'Booking Completed'), ('booking_cancelled', 'Booking Cancelled'), ('payment_required', 'Payment Required'), ('payment_completed', 'Payment Completed'), ('system', 'System')], db_index=True, max_length=50)),
                ('category', models.CharField(choices=[('reminder', 'Reminder'), ('offer', 'Offer'), ('system', 'System'), ('partner', 'Partner'), ('payment', 'Payment'), ('owner', 'Owner')], db_index=True, default='system', max_length=20)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional notification data in JSON format')),
                ('sent_via', models.JSONField(blank=True, default=apps.notifications.models.default_sent_via, help_text='Delivery channels used (app, email, sms, push)')),
                ('is_read', models.BooleanField(db_index=True, default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('actor', models.ForeignKey(blank=True, help_text='User who triggered this notification', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='triggered_notifications', to=settings.AUTH_USER_MODEL)),
                ('booking', models.ForeignKey(blank=True, help_text='Related booking', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='bookings.booking')),
                ('recipient', models.ForeignKey(help_text='User who receives this notification', on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'is_read', '-created_at'], name='notificatio_recipie_684eac_idx'),
                    models.Index(fields=['recipient', 'notification_type'], name='notificatio_recipie_028906_idx'),
                    models.Index(fields=['recipient', 'category'], name='notificatio_recipie_6bdf81_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FCMToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.CharField(max_length=512, unique=True)),
                ('user_role', models.CharField(blank=True, default='', max_length=20)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('platform', models.CharField(blank=True, default='', max_length=100)),
                ('device_type', models.CharField(blank=True, default='web', max_length=20)),
                ('app_version', models.CharField(blank=True, default='', max_length=20)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('last_used', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='fcm_tokens', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'FCM Token',
                'verbose_name_plural': 'FCM Tokens',
                'ordering': ['-last_used'],
                'indexes': [
                    models.Index(fields=['user', 'is_active'], name='notificatio_user_id_a26597_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RealtimeEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_type', models.CharField(choices=[('BOOKING_CREATED', 'Booking Created'), ('BOOKING_CREATED_FOR_OWNER', 'Booking Created For Owner'), ('NEW_DROPOFF', 'New Drop-off'), ('BOOKING_UPDATED', 'Booking Updated'), ('BOOKING_ACCEPTED', 'Booking Accepted'), ('BOOKING_REJECTED', 'Booking Rejected'), ('BOOKING_COMPLETED', 'Booking Completed'), ('BOOKING_CANCELLED', 'Booking Cancelled'), ('PAYMENT_COMPLETED', 'Payment Completed'), ('BIKE_AVAILABILITY_CHANGED', 'Bike Availability Changed')], db_index=True, max_length=40)),
                ('target_role', models.CharField(max_length=20)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Source user and role')),
                ('processed', models.BooleanField(db_index=True, default=False)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('mirrored', models.BooleanField(default=False, help_text='Written to Firestore')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('target_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='realtime_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['target_user', 'processed', '-created_at'], name='notificatio_target__92f951_idx'),
                    models.Index(fields=['processed', 'processed_at'], name='notificatio_process_471f79_idx'),
                ],
            },
        ),
    ]
