import copy

from dictapi.settings.common import *
from configurations import values


class Local(Common):
    DEBUG = True

    SECRET_KEY = values.Value('local-dev-only-secret-key', environ_name='SECRET_KEY', environ_prefix='')

    INSTALLED_APPS = Common.INSTALLED_APPS
    INTERNAL_IPS = ('localhost',)


class Test(Local):
    """
    Settings for unit testing
    """
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

    LOGGING = copy.deepcopy(Common.LOGGING)
    LOGGING['loggers']['dictapi']['handlers'] = ['null']
    LOGGING['loggers']['batch']['handlers'] = ['null']
