import threading
from collections import namedtuple

from django.core.exceptions import ValidationError
from django.db import models

from concepts import tags
from concepts.cache import CompatibleNamesCache
from concepts.mixins import (ConceptNameStoreMixin, ConceptDesignationMixin, ConceptNameResolutionMixin,
                             ConceptDescriptionMixin, ConceptValidationMixin)
from concepts.validation_messages import CONCEPT_ALREADY_RETIRED, CONCEPT_NOT_RETIRED, CONCEPT_RETIRED
from dictapi.locales import Locale
from dictapi.models import DictionaryItemModel, VoidableModel

NAME_TYPE_FULLY_SPECIFIED = 'FULLY_SPECIFIED'
NAME_TYPE_SHORT = 'SHORT'
NAME_TYPE_INDEX_TERM = 'INDEX_TERM'

CONCEPT_KIND_CODED = 'Coded'
CONCEPT_KIND_NUMERIC = 'Numeric'
CONCEPT_KIND_TEXT = 'Text'
CONCEPT_KIND_NA = 'N/A'
CONCEPT_KIND_CHOICES = ((CONCEPT_KIND_CODED, 'Coded'),
                        (CONCEPT_KIND_NUMERIC, 'Numeric'),
                        (CONCEPT_KIND_TEXT, 'Text'),
                        (CONCEPT_KIND_NA, 'N/A'))

NumericRange = namedtuple('NumericRange', ['hi_absolute', 'hi_critical', 'hi_normal',
                                           'low_absolute', 'low_critical', 'low_normal',
                                           'units', 'precise'])
NumericRange.__new__.__defaults__ = (None, None, None, None, None, None, None, False)


class LocalizedText(VoidableModel):
    external_id = models.TextField(null=True, blank=True)
    locale = models.TextField()
    type = models.TextField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def parsed_locale(self):
        """
        None when the stored locale cannot be parsed; such texts are never compatible with any locale.
        """
        try:
            return Locale.parse(self.locale)
        except ValidationError:
            return None


class ConceptName(LocalizedText):
    concept = models.ForeignKey('Concept', null=True, blank=True, on_delete=models.CASCADE, related_name='+')
    name = models.TextField()
    tags = models.JSONField(default=list, blank=True)

    def __str__(self):
        return '%s (%s)' % (self.name, self.locale)

    def clone(self):
        return ConceptName(
            uuid=self.uuid,
            external_id=self.external_id,
            name=self.name,
            type=self.type,
            locale=self.locale,
            tags=list(self.tags),
            voided=self.voided,
            voided_by=self.voided_by,
            date_voided=self.date_voided,
            void_reason=self.void_reason
        )

    def has_tag(self, tag):
        return tag in self.tags

    @property
    def is_preferred(self):
        return self.has_tag(tags.PREFERRED)

    @property
    def is_short(self):
        return self.has_tag(tags.SHORT) or self.type == NAME_TYPE_SHORT or self.type == "Short"

    @property
    def is_synonym(self):
        return self.has_tag(tags.SYNONYM)

    @property
    def is_fully_specified(self):
        return self.type == NAME_TYPE_FULLY_SPECIFIED or self.type == "Fully Specified"

    @property
    def locale_preferred(self):
        """
        Whether the name is explicitly preferred in its own locale, by country when the locale has one, otherwise
        by language.
        """
        locale = self.parsed_locale
        if locale is None:
            return False
        language_tag, country_tag = tags.preferred_tags_for(locale)
        return self.has_tag(country_tag or language_tag)


class ConceptDescription(LocalizedText):
    concept = models.ForeignKey('Concept', null=True, blank=True, on_delete=models.CASCADE, related_name='+')
    description = models.TextField()

    def __str__(self):
        return '%s (%s)' % (self.description, self.locale)

    def clone(self):
        return ConceptDescription(
            uuid=self.uuid,
            external_id=self.external_id,
            description=self.description,
            type=self.type,
            locale=self.locale,
            voided=self.voided
        )


class Concept(ConceptValidationMixin, ConceptNameResolutionMixin, ConceptDesignationMixin, ConceptNameStoreMixin,
              ConceptDescriptionMixin, DictionaryItemModel):
    concept_class = models.TextField()
    datatype = models.TextField(null=True, blank=True)
    kind = models.CharField(max_length=16, choices=CONCEPT_KIND_CHOICES, default=CONCEPT_KIND_CODED)
    numeric_details = models.JSONField(null=True, blank=True)
    is_set = models.BooleanField(default=False)
    version = models.TextField(null=True, blank=True)

    def __init__(self, *args, **kwargs):
        names = kwargs.pop('names', None)
        descriptions = kwargs.pop('descriptions', None)
        super(Concept, self).__init__(*args, **kwargs)
        self._init_naming_state()
        for name in names or []:
            self.add_name(name)
        for description in descriptions or []:
            self.add_description(description)

    def _init_naming_state(self):
        self._lock = threading.RLock()
        self._names = []
        self._descriptions = []
        self._compatible_cache = CompatibleNamesCache()

    def __getstate__(self):
        state = super(Concept, self).__getstate__()
        state.pop('_lock', None)
        state.pop('_compatible_cache', None)
        return state

    def __setstate__(self, state):
        super(Concept, self).__setstate__(state)
        self._lock = threading.RLock()
        self._compatible_cache = CompatibleNamesCache()

    @property
    def is_numeric(self):
        return self.kind == CONCEPT_KIND_NUMERIC

    @property
    def numeric(self):
        """
        Reference ranges and units; only numeric concepts carry them.
        """
        if not self.is_numeric:
            return None
        details = self.numeric_details or {}
        return NumericRange(**dict((k, v) for k, v in details.items() if k in NumericRange._fields))

    def retire(self, user=None, reason=None):
        if self.retired:
            return {'__all__': CONCEPT_ALREADY_RETIRED}
        self.retired = True
        self.retired_by = user
        self.retire_reason = reason or CONCEPT_RETIRED
        return {}

    def unretire(self, user=None):
        if not self.retired:
            return {'__all__': CONCEPT_NOT_RETIRED}
        self.retired = False
        self.retired_by = None
        self.retire_reason = None
        self.updated_by = user or self.updated_by
        return {}
