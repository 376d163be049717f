"""
Celery application for background order notifications and stock alerts.
"""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('pharmacy')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'check-stock-alerts-daily': {
        'task': 'inventory.tasks.check_stock_alerts',
        'schedule': crontab(hour=7, minute=0),
    },
}
