import logging
import re
from collections import namedtuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import translation

logger = logging.getLogger('dictapi')

LOCALE_SEPARATOR_REGEX = re.compile(r'[-_]')

# ISO-639 two letter codes; anything longer is cut down before comparing
LANGUAGE_CODE_LENGTH = 2
SCRIPT_CODE_LENGTH = 4


def _is_script(subtag):
    return len(subtag) == SCRIPT_CODE_LENGTH and subtag.isalpha()


class Locale(namedtuple('Locale', ['language', 'country'])):
    """
    A language plus an optional country, e.g. ``Locale('en', 'GB')``.
    Country is ``None`` when the locale is language-only.
    """
    __slots__ = ()

    def __new__(cls, language, country=None):
        return super(Locale, cls).__new__(cls, language.lower(), country.upper() if country else None)

    def __str__(self):
        return self.code

    @property
    def code(self):
        if self.country:
            return '%s_%s' % (self.language, self.country)
        return self.language

    @property
    def base_language(self):
        return self.language[:LANGUAGE_CODE_LENGTH]

    @property
    def has_country(self):
        return bool(self.country)

    @classmethod
    def parse(cls, value):
        """
        Accepts a Locale, or a string such as 'en', 'en_GB', 'en-gb'.
        A four letter script subtag ('zh-Hant-TW') is skipped, and anything after the
        country part (variants) is ignored.
        """
        if isinstance(value, Locale):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError('Invalid locale: %r' % (value,))
        parts = LOCALE_SEPARATOR_REGEX.split(value.strip())
        language = parts[0]
        if not language:
            raise ValidationError('Invalid locale: %r' % (value,))
        parts = [part for part in parts[1:] if not _is_script(part)]
        country = parts[0] if parts and parts[0] else None
        return cls(language, country)


def are_compatible(locale1, locale2):
    """
    Two locales are compatible when their base languages match and their
    countries do not differ; a language-only locale matches any country.
    """
    if locale1 is None or locale2 is None:
        return False
    locale1 = Locale.parse(locale1)
    locale2 = Locale.parse(locale2)
    if locale1.has_country and locale2.has_country and locale1.country != locale2.country:
        return False
    return locale1.base_language == locale2.base_language


def get_default_locale():
    return Locale.parse(settings.DEFAULT_LOCALE)


def get_current_locale():
    """
    The ambient locale of the caller: Django's active translation, falling
    back to the configured default locale when translations are deactivated.
    """
    language = translation.get_language()
    if not language:
        return get_default_locale()
    return Locale.parse(translation.to_locale(language))


def resolve_locale(locale=None):
    if locale is None:
        return get_current_locale()
    return Locale.parse(locale)
