import logging
from collections import defaultdict

from django.core.exceptions import ValidationError

from concepts import tags
from concepts.validation_messages import (BASIC_NAMES_CANNOT_BE_EMPTY, BASIC_NAME_CANNOT_BE_EMPTY,
                                          BASIC_DESCRIPTION_CANNOT_BE_EMPTY, BASIC_INVALID_NAME_LOCALE,
                                          BASIC_INVALID_DESCRIPTION_LOCALE, BASIC_CONCEPT_CLASS_CANNOT_BE_EMPTY,
                                          TAG_UNKNOWN, TAG_HELD_BY_MORE_THAN_ONE_NAME,
                                          NUMERIC_DETAILS_ONLY_FOR_NUMERIC_CONCEPTS, NUMERIC_RANGES_OUT_OF_ORDER)
from dictapi.locales import Locale

logger = logging.getLogger('dictapi')

NUMERIC_RANGE_ORDER = ('low_absolute', 'low_critical', 'low_normal', 'hi_normal', 'hi_critical', 'hi_absolute')


def message_with_name_details(message, name):
    if name is None:
        return message

    name_str = name.name or 'n/a'
    locale = name.locale or 'n/a'
    preferred = 'yes' if name.locale_preferred else 'no'
    return u'{}: {} (locale: {}, preferred: {})'.format(message, name_str, locale, preferred)


def _is_valid_locale(locale):
    try:
        Locale.parse(locale)
    except ValidationError:
        return False
    return True


class BaseConceptValidator(object):
    def validate(self, concept):
        self.validate_concept_based(concept)

    def validate_concept_based(self, concept):
        pass


class BasicConceptValidator(BaseConceptValidator):
    def validate_concept_based(self, concept):
        self.concept_class_cannot_be_empty(concept)
        self.must_have_at_least_one_name(concept)
        self.names_cannot_be_empty(concept)
        self.name_locales_must_be_valid(concept)
        self.descriptions_cannot_be_empty(concept)
        self.description_locales_must_be_valid(concept)

    def concept_class_cannot_be_empty(self, concept):
        if not concept.concept_class:
            raise ValidationError({'concept_class': [BASIC_CONCEPT_CLASS_CANNOT_BE_EMPTY]})

    def must_have_at_least_one_name(self, concept):
        if not concept.get_names():
            raise ValidationError({'names': [BASIC_NAMES_CANNOT_BE_EMPTY]})

    def names_cannot_be_empty(self, concept):
        for name in concept.get_names():
            if not name.name or not name.name.strip():
                raise ValidationError({'names': [message_with_name_details(BASIC_NAME_CANNOT_BE_EMPTY, name)]})

    def name_locales_must_be_valid(self, concept):
        for name in concept.get_names():
            if not _is_valid_locale(name.locale):
                raise ValidationError({'names': [message_with_name_details(BASIC_INVALID_NAME_LOCALE, name)]})

    def descriptions_cannot_be_empty(self, concept):
        for description in concept.get_descriptions():
            if not description.description or not description.description.strip():
                raise ValidationError({'descriptions': [BASIC_DESCRIPTION_CANNOT_BE_EMPTY]})

    def description_locales_must_be_valid(self, concept):
        for description in concept.get_descriptions():
            if not _is_valid_locale(description.locale):
                raise ValidationError({'descriptions': [BASIC_INVALID_DESCRIPTION_LOCALE]})


class ConceptNameTagValidator(BaseConceptValidator):
    def validate_concept_based(self, concept):
        self.tags_must_be_known(concept)
        self.scoped_tag_must_be_held_by_one_name(concept)

    def tags_must_be_known(self, concept):
        for name in concept.get_names():
            for tag in name.tags:
                if not tags.is_valid_tag(tag):
                    raise ValidationError({'names': [message_with_name_details(TAG_UNKNOWN, name)]})

    def scoped_tag_must_be_held_by_one_name(self, concept):
        holders = defaultdict(list)
        for name in concept.get_names():
            for tag in name.tags:
                if tags.is_scoped_tag(tag):
                    holders[tag].append(name)

        for tag, names in holders.items():
            if len(names) > 1:
                logger.debug('Scoped tag %s held by %d names of concept %s', tag, len(names), concept.mnemonic)
                raise ValidationError({
                    'names': [message_with_name_details(TAG_HELD_BY_MORE_THAN_ONE_NAME, names[1])]
                })


class ConceptKindValidator(BaseConceptValidator):
    def validate_concept_based(self, concept):
        self.numeric_details_only_for_numeric_concepts(concept)
        self.numeric_ranges_must_be_ordered(concept)

    def numeric_details_only_for_numeric_concepts(self, concept):
        if concept.numeric_details and not concept.is_numeric:
            raise ValidationError({'numeric_details': [NUMERIC_DETAILS_ONLY_FOR_NUMERIC_CONCEPTS]})

    def numeric_ranges_must_be_ordered(self, concept):
        numeric = concept.numeric
        if numeric is None:
            return

        bounds = [getattr(numeric, field) for field in NUMERIC_RANGE_ORDER]
        bounds = [bound for bound in bounds if bound is not None]
        if bounds != sorted(bounds):
            raise ValidationError({'numeric_details': [NUMERIC_RANGES_OUT_OF_ORDER]})
