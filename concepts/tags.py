"""
Concept name tags.

Generic tags (PREFERRED, SHORT, SYNONYM) can be held by any number of names. Scoped tags are derived from a locale
and mark the one name a concept prefers (or uses as its short form) within a language or a country.
"""
from dictapi.locales import Locale

PREFERRED = 'PREFERRED'
SHORT = 'SHORT'
SYNONYM = 'SYNONYM'

GENERIC_TAGS = (PREFERRED, SHORT, SYNONYM)

PREFERRED_LANGUAGE = 'PREFERRED_LANGUAGE'
PREFERRED_COUNTRY = 'PREFERRED_COUNTRY'
SHORT_LANGUAGE = 'SHORT_LANGUAGE'
SHORT_COUNTRY = 'SHORT_COUNTRY'

SCOPED_TAG_PREFIXES = (PREFERRED_LANGUAGE, PREFERRED_COUNTRY, SHORT_LANGUAGE, SHORT_COUNTRY)

SCOPE_SEPARATOR = ':'


def _scoped(prefix, code):
    return '%s%s%s' % (prefix, SCOPE_SEPARATOR, code)


def preferred_language_tag(language):
    return _scoped(PREFERRED_LANGUAGE, Locale(language).base_language)


def preferred_country_tag(country):
    return _scoped(PREFERRED_COUNTRY, country.upper())


def short_language_tag(language):
    return _scoped(SHORT_LANGUAGE, Locale(language).base_language)


def short_country_tag(country):
    return _scoped(SHORT_COUNTRY, country.upper())


def preferred_tags_for(locale):
    """
    Returns (language tag, country tag) for a locale; the country tag is None when the locale has no country.
    """
    locale = Locale.parse(locale)
    country_tag = preferred_country_tag(locale.country) if locale.has_country else None
    return preferred_language_tag(locale.language), country_tag


def short_tags_for(locale):
    locale = Locale.parse(locale)
    country_tag = short_country_tag(locale.country) if locale.has_country else None
    return short_language_tag(locale.language), country_tag


def is_scoped_tag(tag):
    prefix, separator, code = tag.partition(SCOPE_SEPARATOR)
    return bool(separator and code) and prefix in SCOPED_TAG_PREFIXES


def is_valid_tag(tag):
    if not isinstance(tag, str):
        return False
    return tag in GENERIC_TAGS or is_scoped_tag(tag)


def normalize_tag(tag):
    """
    Upper-cases generic tags and normalizes the code of scoped tags, e.g. 'preferred_country:gb' becomes
    'PREFERRED_COUNTRY:GB'. Unknown tags are returned unchanged.
    """
    if not isinstance(tag, str):
        return tag
    prefix, separator, code = tag.strip().partition(SCOPE_SEPARATOR)
    prefix = prefix.upper()
    if not separator:
        return prefix if prefix in GENERIC_TAGS else tag
    if prefix in (PREFERRED_LANGUAGE, SHORT_LANGUAGE) and code:
        return _scoped(prefix, Locale(code).base_language)
    if prefix in (PREFERRED_COUNTRY, SHORT_COUNTRY) and code:
        return _scoped(prefix, code.upper())
    return tag
