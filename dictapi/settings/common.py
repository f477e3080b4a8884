import os
from configurations import Configuration, values

BASE_DIR = os.path.dirname(os.path.dirname(__file__))


class Common(Configuration):
    DEBUG = False

    ADMINS = (
        ('Dictionary Admin', 'admin@example.org'),
    )

    MANAGERS = ADMINS

    # Hosts/domain names that are valid for this site; required if DEBUG is False
    ALLOWED_HOSTS = ['localhost', '127.0.0.1', '[::1]']

    TIME_ZONE = 'America/New_York'

    # Language code for this installation. It is also the ambient locale used
    # to resolve concept names when a caller does not supply one.
    LANGUAGE_CODE = 'en-us'

    USE_I18N = True

    USE_TZ = True

    # Locale of last resort for concept descriptions
    DEFAULT_LOCALE = values.Value('en', environ_name='DEFAULT_LOCALE', environ_prefix='')

    DEFAULT_AUTO_FIELD = 'django.db.models.AutoField'

    INSTALLED_APPS = (
        'django.contrib.contenttypes',
        # Third-party apps:
        'rest_framework',
        # Core app
        'dictapi',
        # Project-specific apps:
        'concepts',
    )

    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.path.join(BASE_DIR, 'dictapi.sqlite3'),
        }
    }

    REST_FRAMEWORK = {
        'DEFAULT_RENDERER_CLASSES': (
            'rest_framework.renderers.JSONRenderer',
        ),
        'UNAUTHENTICATED_USER': None,
    }

    LOGGING = {
        'version': 1,
        'disable_existing_loggers': False,

        'formatters': {
            'normal': {
                'format': "[%(filename)s:%(lineno)s - %(funcName)20s() ] %(message)s",
                'datefmt': "%Y/%m/%d %H:%M:%S"
            },
        },

        'handlers': {
            'null': {
                'class': 'logging.NullHandler',
            },
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'normal',
            },
        },

        'loggers': {
            'dictapi': {
                'handlers': ['console'],
                'level': 'INFO',
            },
            'batch': {
                'handlers': ['console'],
                'level': 'INFO',
            },
        }
    }
