import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('prescriptions')

# every CELERY_* entry in Django settings configures the app
app.config_from_object('django.conf:settings', namespace='CELERY')

# picks up tasks.py from each installed app
app.autodiscover_tasks()
