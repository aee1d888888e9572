"""
Add celery-beat schedule for the weekly therapist settlement.

Runs every Monday at 09:00 South African Standard Time. The task settles
completed, paid service requests from the preceding week and sweeps the
accumulated service fees to the master account.
"""

from django.db import migrations

TASK_NAME = "Weekly Therapist Settlement"


def create_periodic_task(apps, schema_editor):
    """Create the crontab schedule and periodic task for the weekly run."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Monday 09:00 Africa/Johannesburg
    schedule, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="9",
        day_of_week="1",
        day_of_month="*",
        month_of_year="*",
        timezone="Africa/Johannesburg",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "payments.workers.settlement.run_weekly_settlement",
            "crontab": schedule,
            "enabled": True,
            "description": (
                "Creates payments for last week's completed, paid service "
                "requests, transfers therapist earnings and sweeps service "
                "fees to the master account."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
