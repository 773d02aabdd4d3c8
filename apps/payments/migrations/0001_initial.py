import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('bookings', '0001_initial'),
        ('partners', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uuid_id', models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, help_text='UUID for API-safe exposure', unique=True)),
                ('installment', models.CharField(choices=[('initial', 'Initial'), ('remaining', 'Remaining'), ('full', 'Full')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='LKR', max_length=3)),
                ('method', models.CharField(choices=[('card', 'Card'), ('cash', 'Cash'), ('bank_transfer', 'Bank Transfer'), ('online', 'Online Wallet')], max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('refunded', 'Refunded')], db_index=True, default='pending', max_length=20)),
                ('transaction_id', models.CharField(max_length=64, unique=True)),
                ('additional_charges', models.JSONField(blank=True, default=list, help_text='Snapshot of booking charges collected with this payment')),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('refunded_at', models.DateTimeField(blank=True, null=True)),
                ('refund_reason', models.TextField(blank=True, default='')),
                ('refund_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='bookings.booking')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['booking', 'status'], name='payments_pa_booking_57d6de_idx'),
                    models.Index(fields=['customer', '-created_at'], name='payments_pa_custome_a935a8_idx'),
                    models.Index(fields=['status', 'method'], name='payments_pa_status_75d3b1_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PartnerTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transaction_type', models.CharField(choices=[('owner_earnings', 'Owner Earnings'), ('pickup_earnings', 'Pickup Earnings'), ('bonus_payment', 'Bonus Payment'), ('referral_commission', 'Referral Commission'), ('withdrawal', 'Withdrawal'), ('refund_deduction', 'Refund Deduction'), ('penalty_fee', 'Penalty Fee'), ('platform_fee_adjustment', 'Platform Fee Adjustment'), ('chargeback', 'Chargeback'), ('platform_fee', 'Platform Fee')], max_length=30)),
                ('category', models.CharField(choices=[('earning', 'Earning'), ('deduction', 'Deduction')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Positive for earnings, negative for deductions', max_digits=12)),
                ('status', models.CharField(choices=[('completed', 'Completed'), ('pending', 'Pending'), ('cancelled', 'Cancelled')], default='completed', max_length=20)),
                ('description', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('booking', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='partner_transactions', to='bookings.booking')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_partner_transactions', to=settings.AUTH_USER_MODEL)),
                ('partner', models.ForeignKey(blank=True, help_text='Null for platform entries', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='partners.partner')),
                ('payment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ledger_entries', to='payments.payment')),
                ('related_transaction', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='child_transactions', to='payments.partnertransaction')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['partner', '-created_at'], name='payments_pa_partner_dfd0c4_idx'),
                    models.Index(fields=['partner', 'category'], name='payments_pa_partner_ff9512_idx'),
                    models.Index(fields=['payment'], name='payments_pa_payment_edba9d_idx'),
                    models.Index(fields=['booking'], name='payments_pa_booking_1e0227_idx'),
                    models.Index(fields=['transaction_type'], name='payments_pa_transac_968342_idx'),
                ],
            },
        ),
    ]
