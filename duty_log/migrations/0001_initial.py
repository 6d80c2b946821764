import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='DriverCycle',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('driver_id', models.CharField(max_length=64, unique=True)),
                ('hours_used', models.FloatField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('hours_limit', models.FloatField(default=70, validators=[django.core.validators.MinValueValidator(0)])),
                ('cycle_started_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Driver Cycle',
                'verbose_name_plural': 'Driver Cycles',
                'ordering': ['driver_id'],
            },
        ),
        migrations.CreateModel(
            name='ActivityEntry',
            fields=[
                ('id', models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ('driver_id', models.CharField(db_index=True, max_length=64)),
                ('status', models.CharField(choices=[('OFFDUTY', 'Off Duty'), ('SLEEPER', 'Sleeper Berth'), ('DRIVING', 'Driving'), ('ONDUTY', 'On Duty (Not Driving)')], max_length=10)),
                ('start_time', models.DateTimeField(help_text='When the activity started')),
                ('end_time', models.DateTimeField(blank=True, help_text='Empty while the activity is open', null=True)),
                ('location', models.CharField(blank=True, max_length=500)),
                ('notes', models.TextField(blank=True)),
                ('odometer', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('engine_hours', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Activity Entry',
                'verbose_name_plural': 'Activity Entries',
                'ordering': ['driver_id', 'start_time'],
                'indexes': [models.Index(fields=['driver_id', 'start_time'], name='activity_driver_start_idx')],
            },
        ),
    ]
