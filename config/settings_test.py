from .settings import *

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

STORAGES = {
    **STORAGES,
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

TELEGRAM_BOT_TOKEN = 'test-token'
TELEGRAM_ADMIN_CHAT_IDS = '1001,1002'
BOOKING_CHECK_ADJACENT_DAYS = True
