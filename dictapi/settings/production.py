import copy

from dictapi.settings.common import *


class Production(Common):
    INSTALLED_APPS = Common.INSTALLED_APPS

    SECRET_KEY = values.SecretValue(environ_name='SECRET_KEY', environ_prefix='')

    LOGGING = copy.deepcopy(Common.LOGGING)
    LOGGING['handlers']['logfile'] = {
        'level': 'DEBUG',
        'class': 'logging.handlers.TimedRotatingFileHandler',
        'when': 'midnight',
        'filename': os.path.join(os.environ.get('LOG_DIR', BASE_DIR), 'dictapi.log'),
        'formatter': 'normal',
    }
    LOGGING['loggers']['dictapi']['handlers'] = ['console', 'logfile']
    LOGGING['loggers']['batch']['handlers'] = ['console', 'logfile']
