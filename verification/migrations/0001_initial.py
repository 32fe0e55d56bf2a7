import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('widgets', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='RateLimitBucket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=255, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='VerificationEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('widget_id', models.CharField(max_length=64)),
                ('visitor_id', models.CharField(max_length=255)),
                ('event_type', models.CharField(choices=[('otp_sent', 'OTP sent'), ('rate_limited', 'Rate limited'), ('otp_failed', 'OTP failed'), ('otp_exhausted', 'OTP attempts exhausted'), ('otp_verified', 'OTP verified')], max_length=20)),
                ('email_hash', models.CharField(max_length=64)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['widget_id', 'event_type', 'created_at'], name='verif_event_widget_type_idx')],
            },
        ),
        migrations.CreateModel(
            name='EmailVerificationChallenge',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email_hash', models.CharField(max_length=64)),
                ('otp_code', models.CharField(max_length=6)),
                ('visitor_id', models.CharField(max_length=255)),
                ('expires_at', models.DateTimeField()),
                ('verified', models.BooleanField(default=False)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('verified_by_visitor_id', models.CharField(blank=True, max_length=255, null=True)),
                ('attempts', models.PositiveSmallIntegerField(default=0)),
                ('invalidated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('widget', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='verification_challenges', to='widgets.widgetconfig', to_field='widget_id')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email_hash', 'widget', 'created_at'], name='challenge_hash_widget_idx'), models.Index(fields=['expires_at'], name='challenge_expires_idx')],
            },
        ),
        migrations.CreateModel(
            name='RateLimitHit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('bucket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='hits', to='verification.ratelimitbucket')),
            ],
            options={
                'indexes': [models.Index(fields=['bucket', 'created_at'], name='ratelimit_hit_bucket_idx')],
            },
        ),
    ]
