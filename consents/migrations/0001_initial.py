import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('widgets', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ConsentRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('widget_id', models.CharField(max_length=64)),
                ('visitor_id', models.CharField(max_length=255)),
                ('consent_id', models.CharField(max_length=255, db_index=True)),
                ('consent_status', models.CharField(choices=[('accepted', 'Accepted'), ('rejected', 'Rejected'), ('partial', 'Partial'), ('revoked', 'Revoked')], max_length=10)),
                ('consented_activities', models.JSONField(default=list)),
                ('rejected_activities', models.JSONField(default=list)),
                ('consent_details', models.JSONField(blank=True, default=dict)),
                ('email_hash', models.CharField(blank=True, max_length=64, null=True)),
                ('revoked_at', models.DateTimeField(blank=True, null=True)),
                ('revocation_reason', models.TextField(blank=True, null=True)),
                ('truncated_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('device_type', models.CharField(choices=[('Desktop', 'Desktop'), ('Mobile', 'Mobile'), ('Tablet', 'Tablet'), ('Unknown', 'Unknown')], default='Unknown', max_length=10)),
                ('language', models.CharField(default='en', max_length=16)),
                ('consent_given_at', models.DateTimeField()),
                ('consent_expires_at', models.DateTimeField()),
                ('privacy_notice_version', models.CharField(default='3.0', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['widget_id', 'visitor_id'], name='record_widget_visitor_idx'), models.Index(fields=['widget_id', 'email_hash'], name='record_widget_hash_idx')],
            },
        ),
        migrations.CreateModel(
            name='ActivityPreference',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('visitor_id', models.CharField(max_length=255)),
                ('consent_status', models.CharField(choices=[('accepted', 'Accepted'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn')], max_length=20)),
                ('email_hash', models.CharField(blank=True, max_length=64, null=True)),
                ('truncated_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('device_type', models.CharField(choices=[('Desktop', 'Desktop'), ('Mobile', 'Mobile'), ('Tablet', 'Tablet'), ('Unknown', 'Unknown')], default='Unknown', max_length=10)),
                ('language', models.CharField(default='en', max_length=16)),
                ('consent_version', models.CharField(default='1.0', max_length=20)),
                ('decided_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('activity', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='preferences', to='widgets.processingactivity')),
                ('widget', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='preferences', to='widgets.widgetconfig', to_field='widget_id')),
            ],
            options={
                'ordering': ['widget', 'visitor_id', 'activity'],
                'indexes': [models.Index(fields=['widget', 'email_hash'], name='preference_widget_hash_idx')],
                'constraints': [models.UniqueConstraint(fields=('visitor_id', 'widget', 'activity'), name='uniq_preference_visitor_widget_activity')],
            },
        ),
        migrations.CreateModel(
            name='ConsentHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('visitor_id', models.CharField(max_length=255)),
                ('previous_status', models.CharField(blank=True, choices=[('accepted', 'Accepted'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn')], max_length=20, null=True)),
                ('new_status', models.CharField(choices=[('accepted', 'Accepted'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn')], max_length=20)),
                ('change_source', models.CharField(max_length=20)),
                ('device_type', models.CharField(choices=[('Desktop', 'Desktop'), ('Mobile', 'Mobile'), ('Tablet', 'Tablet'), ('Unknown', 'Unknown')], default='Unknown', max_length=10)),
                ('language', models.CharField(default='en', max_length=16)),
                ('consent_version', models.CharField(default='1.0', max_length=20)),
                ('changed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('activity', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consent_history', to='widgets.processingactivity')),
                ('widget', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consent_history', to='widgets.widgetconfig', to_field='widget_id')),
            ],
            options={
                'verbose_name_plural': 'Consent history',
                'ordering': ['-changed_at'],
                'indexes': [models.Index(fields=['visitor_id', 'widget', 'changed_at'], name='history_visitor_widget_idx')],
            },
        ),
    ]
