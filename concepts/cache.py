import logging

from dictapi.locales import Locale, are_compatible

logger = logging.getLogger('dictapi')


class CompatibleNamesCache(object):
    """
    Remembers, per locale, which names of a concept are compatible with that locale.

    Entries are rebuilt lazily and dropped all at once by clear(). The owning concept holds its lock around
    every call, so an entry is only ever published once it is complete.
    """

    def __init__(self):
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, locale):
        return Locale.parse(locale) in self._entries

    def get(self, locale, names):
        """
        Returns the names compatible with locale. names is a callable producing the current non-voided names in
        store order; it is only called on a miss. Names whose locale cannot be parsed are left out.
        """
        locale = Locale.parse(locale)
        compatible = self._entries.get(locale)
        if compatible is None:
            compatible = tuple(name for name in names() if self._is_compatible(name, locale))
            self._entries[locale] = compatible
        return compatible

    def _is_compatible(self, name, locale):
        name_locale = name.parsed_locale
        if name_locale is None:
            logger.warning('Ignoring name %r with invalid locale %r', name.name, name.locale)
            return False
        return are_compatible(name_locale, locale)

    def clear(self):
        self._entries.clear()
