import logging
import os

from django.conf import settings
from django.utils import timezone

from concepts import tags
from concepts.validators import BasicConceptValidator, ConceptNameTagValidator, ConceptKindValidator
from dictapi.locales import Locale, are_compatible, resolve_locale

logger = logging.getLogger('dictapi')

# running-best priorities while scanning compatible names
MATCH_ANY = 1
MATCH_GENERIC = 2
MATCH_LANGUAGE = 3


class ConceptNameStoreMixin(object):
    """
    Owns the names of a concept. Every read and write happens under the concept lock, and every write that changes
    which names are visible drops the compatible-names cache before the lock is released.
    """

    def get_names(self, include_voided=False):
        with self._lock:
            if include_voided:
                return list(self._names)
            return [name for name in self._names if not name.voided]

    @property
    def names(self):
        return self.get_names()

    def get_names_for_locale(self, locale):
        """
        Names in exactly the given locale; compatible locales are not considered.
        """
        locale = resolve_locale(locale)
        return [name for name in self.get_names() if name.parsed_locale == locale]

    def get_compatible_names(self, locale=None):
        locale = resolve_locale(locale)
        with self._lock:
            # voided may be flipped on a name directly, which does not clear the cache
            return [name for name in self._compatible_cache.get(locale, self.get_names) if not name.voided]

    def add_name(self, name):
        if name is None:
            logger.debug('Ignoring attempt to add an empty name to concept %s', self.mnemonic)
            return False
        with self._lock:
            name.concept = self
            if name in self._names:
                return False
            self._names.append(name)
            self._compatible_cache.clear()
            return True

    def remove_name(self, name):
        with self._lock:
            if name is None or name not in self._names:
                return False
            self._names.remove(name)
            self._compatible_cache.clear()
            return True

    def void_name(self, name, voided_by=None, reason=None):
        with self._lock:
            if name not in self._names or name.voided:
                return False
            name.voided = True
            name.voided_by = voided_by
            name.void_reason = reason
            name.date_voided = timezone.now()
            self._compatible_cache.clear()
            return True

    def unvoid_name(self, name):
        with self._lock:
            if name not in self._names or not name.voided:
                return False
            name.voided = False
            name.voided_by = None
            name.void_reason = None
            name.date_voided = None
            self._compatible_cache.clear()
            return True

    def add_name_tag(self, name, tag):
        """
        Tags one of this concept's names. Scoped designations should go through set_preferred_name/set_short_name,
        which keep them unique.
        """
        tag = tags.normalize_tag(tag)
        if not tags.is_valid_tag(tag):
            raise ValueError('Unknown concept name tag: %s' % tag)
        with self._lock:
            if name not in self._names:
                return False
            self._tag(name, tag)
            return True

    def remove_name_tag(self, name, tag):
        tag = tags.normalize_tag(tag)
        with self._lock:
            if name not in self._names or not name.has_tag(tag):
                return False
            self._untag(name, tag)
            return True

    def _tag(self, name, tag):
        if not name.has_tag(tag):
            name.tags = list(name.tags) + [tag]

    def _untag(self, name, tag):
        name.tags = [t for t in name.tags if t != tag]

    def get_name_known_as(self, term, locale):
        locale = resolve_locale(locale)
        for name in self.get_names():
            if name.name == term and name.parsed_locale == locale:
                return name
        return None

    def find_name_tagged_with(self, tag):
        """
        First name holding the tag. Does not guarantee it is the only one.
        """
        for name in self.get_names():
            if name.has_tag(tag):
                return name
        return None

    def has_name(self, name, locale=None):
        if name is None:
            return False
        candidates = self.get_names() if locale is None else self.get_names_for_locale(locale)
        return any(name == candidate.name for candidate in candidates)

    def is_named(self, name):
        return self.has_name(name)

    def get_synonyms(self, locale=None):
        language = resolve_locale(locale).base_language
        synonyms = [name for name in self.get_names()
                    if name.is_synonym and name.parsed_locale and name.parsed_locale.base_language == language]
        logger.debug('returning: %s', synonyms)
        return synonyms

    @property
    def names_for_default_locale(self):
        default_locale = Locale.parse(settings.DEFAULT_LOCALE)
        return [name.name for name in self.get_names() if name.parsed_locale == default_locale]


class ConceptDesignationMixin(object):
    """
    Preferred and short designations. A designation scoped to a country also makes the name preferred (or short) in
    its language, unless another name already is.
    """

    def set_preferred_name(self, locale, name):
        return self._designate(locale, name, tags.preferred_tags_for)

    def set_short_name(self, locale, name):
        return self._designate(locale, name, tags.short_tags_for)

    def _designate(self, locale, name, tags_for):
        if name is None:
            logger.warning('No name given to designate for concept %s', self.mnemonic)
            return None
        locale = resolve_locale(locale)
        language_tag, country_tag = tags_for(locale)

        with self._lock:
            existing_name = self.get_name_known_as(name.name, locale)
            if existing_name is not None:
                name = existing_name

            if country_tag is not None:
                if self.find_name_tagged_with(language_tag) is None:
                    self._strip_tag(language_tag, keep=name)
                    self._tag(name, language_tag)
                self._strip_tag(country_tag, keep=name)
                self._tag(name, country_tag)
            else:
                self._strip_tag(language_tag, keep=name)
                self._tag(name, language_tag)

            self.add_name(name)
        return name

    def _strip_tag(self, tag, keep):
        # voided names lose the tag too, so unvoiding one cannot produce a second holder
        for holder in self._names:
            if holder != keep and holder.has_tag(tag):
                self._untag(holder, tag)

    def get_preferred_name_for_country(self, country):
        return self.find_name_tagged_with(tags.preferred_country_tag(country))

    def get_preferred_name_in_language(self, language):
        return self.find_name_tagged_with(tags.preferred_language_tag(language))

    def get_short_name_for_country(self, country):
        return self.find_name_tagged_with(tags.short_country_tag(country))

    def get_short_name_in_language(self, language):
        return self.find_name_tagged_with(tags.short_language_tag(language))

    def get_short_name_in_locale(self, locale=None):
        """
        The name explicitly designated short for the locale: by country when the locale has one, otherwise by
        language. Falls back to any compatible name tagged SHORT.
        """
        locale = resolve_locale(locale)
        with self._lock:
            if locale.has_country:
                short_name = self.get_short_name_for_country(locale.country)
            else:
                short_name = self.get_short_name_in_language(locale.language)
            if short_name is None:
                for name in self.get_compatible_names(locale):
                    if name.has_tag(tags.SHORT):
                        return name
            return short_name


class ConceptNameResolutionMixin(object):
    """
    Picks the single best name of a concept for a locale.

    Candidates are the names compatible with the locale, in store order. A name designated for the locale's country
    (or, without a country, its language) wins outright. Otherwise the best candidate seen so far is kept, and it is
    only replaced by one of strictly higher priority: language designation, then a generic tag, then anything.
    """

    def _match_names(self, locale, candidates, language_tag, country_tag, is_generic,
                     exact_locale_preferred=True, generic_ends_scan=False, include_untagged=True):
        """
        Returns (match, best): match is a name that ended the scan, best the running best otherwise.
        """
        best = None
        best_priority = 0
        for name in candidates:
            if exact_locale_preferred and name.parsed_locale == locale and name.is_preferred:
                return name, best
            if country_tag is not None:
                if name.has_tag(country_tag):
                    return name, best
                if name.has_tag(language_tag):
                    priority = MATCH_LANGUAGE
                elif is_generic(name):
                    priority = MATCH_GENERIC
                else:
                    priority = MATCH_ANY
            else:
                if name.has_tag(language_tag) or (generic_ends_scan and is_generic(name)):
                    return name, best
                priority = MATCH_GENERIC if is_generic(name) else MATCH_ANY
            if priority == MATCH_ANY and not include_untagged:
                continue
            if priority > best_priority:
                best = name
                best_priority = priority
        return None, best

    def get_name(self, locale=None, exact=False):
        """
        Name for a locale. With exact, only a name preferred in exactly the locale, or designated for the locale's
        country (language when it has no country) is returned. Otherwise falls back to the best compatible name and
        then to any name at all.
        """
        locale = resolve_locale(locale)
        with self._lock:
            names = self.get_names()
            if not names:
                logger.debug('there are no names defined for: %s', self.mnemonic)
                return None

            logger.debug('Getting concept name for locale: %s', locale)
            language_tag, country_tag = tags.preferred_tags_for(locale)
            match, best = self._match_names(locale, self.get_compatible_names(locale), language_tag, country_tag,
                                            is_generic=lambda n: n.is_preferred)

            if exact:
                if match is None:
                    logger.warning('No concept name found for concept %s for locale %s', self.mnemonic, locale)
                return match

            if match is not None:
                return match
            if best is not None:
                return best

            logger.info('No compatible concept name found for locale %s for concept %s', locale, self.mnemonic)
            return names[0]

    def get_preferred_name(self, locale=None):
        """
        Name explicitly marked as preferred for the locale, or None. Untagged names never qualify.
        """
        locale = resolve_locale(locale)
        with self._lock:
            if not self.get_names():
                logger.debug('there are no names defined for: %s', self.mnemonic)
                return None

            logger.debug('Getting preferred concept name for locale: %s', locale)
            language_tag, country_tag = tags.preferred_tags_for(locale)
            match, best = self._match_names(locale, self.get_compatible_names(locale), language_tag, country_tag,
                                            is_generic=lambda n: n.is_preferred, include_untagged=False)
            preferred_name = match or best

        if preferred_name is None:
            logger.warning('No preferred concept name found for concept %s in locale %s', self.mnemonic, locale)
        return preferred_name

    def get_best_name(self, locale=None):
        """
        Best compatible name for a locale:
        1. preferred name in the locale's country
        2. preferred name in the locale's language
        3. a name tagged PREFERRED
        4. any compatible name
        and when no name is compatible, the first name of the concept.
        """
        locale = resolve_locale(locale)
        language_tag, country_tag = tags.preferred_tags_for(locale)
        return self._best_of(locale, language_tag, country_tag, is_generic=lambda n: n.is_preferred)

    def get_best_short_name(self, locale=None):
        """
        Same ordering as get_best_name, with short designations. Without a country a generic short name is as good
        as a short name designated for the language.
        """
        locale = resolve_locale(locale)
        language_tag, country_tag = tags.short_tags_for(locale)
        return self._best_of(locale, language_tag, country_tag, is_generic=lambda n: n.is_short,
                             exact_locale_preferred=False, generic_ends_scan=True)

    def _best_of(self, locale, language_tag, country_tag, is_generic, **kwargs):
        with self._lock:
            names = self.get_names()
            if not names:
                logger.debug('there are no names defined for: %s', self.mnemonic)
                return None

            compatible_names = self.get_compatible_names(locale)
            if not compatible_names:
                logger.info('No compatible concept name found for locale %s for concept %s, using first available',
                            locale, self.mnemonic)
                return names[0]
            if len(compatible_names) == 1:
                return compatible_names[0]

            match, best = self._match_names(locale, compatible_names, language_tag, country_tag, is_generic, **kwargs)
            return match or best

    def get_shortest_name(self, locale=None, exact=False):
        """
        Shortest name of the concept. The search is not restricted to the locale, so with exact nothing is ever
        found.
        """
        locale = resolve_locale(locale)
        logger.debug('Getting shortest concept name for locale: %s', locale)
        shortest_name = None
        for name in self.get_names():
            if shortest_name is None or len(name.name) < len(shortest_name.name):
                shortest_name = name

        if exact:
            logger.warning('No short concept name found for concept %s for locale %s', self.mnemonic, locale)
            return None
        if shortest_name is None:
            logger.warning('No concept name found for concept %s', self.mnemonic)
        return shortest_name

    @property
    def display_name(self):
        name = self.get_name()
        return name.name if name else None

    @property
    def display_locale(self):
        name = self.get_name()
        return name.locale if name else None

    def get_display_string(self):
        return self.display_name or self.mnemonic


class ConceptDescriptionMixin(object):

    def get_descriptions(self):
        with self._lock:
            return [description for description in self._descriptions if not description.voided]

    @property
    def descriptions(self):
        return self.get_descriptions()

    def add_description(self, description):
        if description is None:
            logger.debug('Ignoring attempt to add an empty description to concept %s', self.mnemonic)
            return False
        with self._lock:
            description.concept = self
            if description in self._descriptions:
                return False
            self._descriptions.append(description)
            return True

    def remove_description(self, description):
        with self._lock:
            if description is None or description not in self._descriptions:
                return False
            self._descriptions.remove(description)
            return True

    def get_description(self, locale=None, exact=False):
        """
        Description in exactly the locale; unless exact, the first compatible one, or else the one in the default
        locale.
        """
        locale = resolve_locale(locale)
        default_locale = Locale.parse(settings.DEFAULT_LOCALE)
        logger.debug('Getting concept description for locale: %s', locale)

        found_description = None
        default_description = None
        for description in self.get_descriptions():
            available_locale = description.parsed_locale
            if available_locale == locale:
                return description
            if not exact and found_description is None and are_compatible(available_locale, locale):
                found_description = description
            if default_description is None and available_locale == default_locale:
                default_description = description

        if found_description is not None:
            return found_description
        if exact:
            logger.debug('No concept description found for concept %s for locale %s', self.mnemonic, locale)
            return None
        if default_description is None:
            logger.debug('No concept description found for default locale for concept %s', self.mnemonic)
        return default_description

    @property
    def descriptions_for_default_locale(self):
        default_locale = Locale.parse(settings.DEFAULT_LOCALE)
        return [d.description for d in self.get_descriptions() if d.parsed_locale == default_locale]


class ConceptValidationMixin(object):
    concept_validators = (BasicConceptValidator, ConceptNameTagValidator, ConceptKindValidator)

    def clean(self):
        if os.environ.get('DISABLE_VALIDATION'):
            return

        for validator_class in self.concept_validators:
            validator_class().validate(self)
