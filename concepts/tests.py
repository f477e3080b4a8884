import json
import os
import pickle
import random
import tempfile
import threading
from io import StringIO
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command, CommandError
from django.test import override_settings
from django.utils import translation
from rest_framework import serializers

from concepts import tags
from concepts.cache import CompatibleNamesCache
from concepts.models import ConceptName, ConceptDescription, CONCEPT_KIND_NUMERIC, CONCEPT_KIND_CODED, NumericRange
from concepts.serializers import ConceptDetailSerializer, ConceptListSerializer, ConceptNameSerializer
from concepts.validation_messages import (BASIC_NAMES_CANNOT_BE_EMPTY, TAG_HELD_BY_MORE_THAN_ONE_NAME, TAG_UNKNOWN,
                                          NUMERIC_DETAILS_ONLY_FOR_NUMERIC_CONCEPTS, NUMERIC_RANGES_OUT_OF_ORDER,
                                          BASIC_CONCEPT_CLASS_CANNOT_BE_EMPTY, CONCEPT_ALREADY_RETIRED,
                                          CONCEPT_NOT_RETIRED)
from concepts.validators import message_with_name_details
from dictapi.locales import are_compatible
from test_helper.base import (DictApiBaseTestCase, create_concept, create_concept_name, create_description)

PREFERRED_EN = tags.preferred_language_tag('en')
PREFERRED_GB = tags.preferred_country_tag('GB')
SHORT_EN = tags.short_language_tag('en')


def holders_of(concept, tag):
    return [name for name in concept.get_names() if name.has_tag(tag)]


class ConceptNameTagTest(DictApiBaseTestCase):

    def test_scoped_tags_for_locale_with_country(self):
        self.assertEqual(('PREFERRED_LANGUAGE:en', 'PREFERRED_COUNTRY:GB'), tags.preferred_tags_for('en_GB'))
        self.assertEqual(('SHORT_LANGUAGE:en', 'SHORT_COUNTRY:GB'), tags.short_tags_for('en-gb'))

    def test_country_tag_only_exists_with_country(self):
        self.assertEqual(('PREFERRED_LANGUAGE:fr', None), tags.preferred_tags_for('fr'))
        self.assertEqual(('SHORT_LANGUAGE:fr', None), tags.short_tags_for('fr'))

    def test_language_tags_use_truncated_language(self):
        self.assertEqual('PREFERRED_LANGUAGE:en', tags.preferred_language_tag('ENG'))

    def test_vocabulary(self):
        for tag in ['PREFERRED', 'SHORT', 'SYNONYM', 'PREFERRED_LANGUAGE:en', 'SHORT_COUNTRY:UG']:
            self.assertTrue(tags.is_valid_tag(tag), tag)
        for tag in ['FAVOURITE', 'PREFERRED_LANGUAGE:', 'PREFERRED_REGION:EU', None]:
            self.assertFalse(tags.is_valid_tag(tag), tag)

    def test_normalize_tag(self):
        self.assertEqual('SYNONYM', tags.normalize_tag('synonym'))
        self.assertEqual('PREFERRED_COUNTRY:GB', tags.normalize_tag('preferred_country:gb'))
        self.assertEqual('SHORT_LANGUAGE:en', tags.normalize_tag('short_language:EN'))
        self.assertEqual('whatever', tags.normalize_tag('whatever'))


class CompatibleNamesCacheTest(DictApiBaseTestCase):

    def setUp(self):
        super(CompatibleNamesCacheTest, self).setUp()
        self.names = [create_concept_name('Fever', 'en'), create_concept_name('Pyrexia', 'en_GB'),
                      create_concept_name('Fiebre', 'es')]
        self.calls = 0

    def provider(self):
        self.calls += 1
        return self.names

    def test_builds_once_per_locale(self):
        cache = CompatibleNamesCache()
        first = cache.get('en_GB', self.provider)
        second = cache.get('en-gb', self.provider)

        self.assertEqual(['Fever', 'Pyrexia'], [n.name for n in first])
        self.assertIs(first, second)
        self.assertEqual(1, self.calls)
        self.assertIn('en_GB', cache)
        self.assertEqual(1, len(cache))

    def test_clear_forces_rebuild(self):
        cache = CompatibleNamesCache()
        cache.get('es', self.provider)
        cache.clear()

        self.assertEqual(0, len(cache))
        cache.get('es', self.provider)
        self.assertEqual(2, self.calls)


class ConceptNameStoreTest(DictApiBaseTestCase):

    def test_add_name(self):
        concept = create_concept()
        name = create_concept_name('Fever')

        self.assertTrue(concept.add_name(name))
        self.assertIs(concept, name.concept)
        self.assertEqual([name], concept.get_names())

    def test_add_name_twice(self):
        concept = create_concept()
        name = create_concept_name('Fever')
        concept.add_name(name)

        self.assertFalse(concept.add_name(name))
        self.assertEqual(1, len(concept.get_names()))

    def test_add_name_none(self):
        concept = create_concept()
        self.assertFalse(concept.add_name(None))
        self.assertEqual([], concept.get_names())

    def test_names_are_addressed_by_identity(self):
        concept = create_concept()
        name = create_concept_name('Fever')
        concept.add_name(name)

        self.assertFalse(concept.add_name(name.clone()))
        self.assertTrue(concept.add_name(create_concept_name('Fever')))

    def test_remove_name(self):
        name = create_concept_name('Fever')
        concept = create_concept(names=[name])

        self.assertTrue(concept.remove_name(name))
        self.assertFalse(concept.remove_name(name))
        self.assertFalse(concept.remove_name(None))
        self.assertEqual([], concept.get_names())

    def test_get_names_excludes_voided_unless_asked(self):
        voided = create_concept_name('Old name', voided=True)
        current = create_concept_name('Fever')
        concept = create_concept(names=[voided, current])

        self.assertEqual([current], concept.get_names())
        self.assertEqual([voided, current], concept.get_names(include_voided=True))
        self.assertEqual([current], concept.names)

    def test_get_names_for_locale_is_exact(self):
        en = create_concept_name('Fever', 'en')
        gb = create_concept_name('Pyrexia', 'en_GB')
        concept = create_concept(names=[en, gb])

        self.assertEqual([gb], concept.get_names_for_locale('en_GB'))
        self.assertEqual([en], concept.get_names_for_locale('en'))
        self.assertEqual([], concept.get_names_for_locale('en_US'))

    def test_get_compatible_names(self):
        en = create_concept_name('Fever', 'en')
        gb = create_concept_name('Pyrexia', 'en_GB')
        us = create_concept_name('Fever (US)', 'en_US')
        es = create_concept_name('Fiebre', 'es')
        concept = create_concept(names=[en, gb, us, es])

        self.assertEqual([en, gb], concept.get_compatible_names('en_GB'))
        self.assertEqual([en, gb, us], concept.get_compatible_names('en'))
        self.assertEqual([es], concept.get_compatible_names('es_MX'))
        self.assertEqual([], concept.get_compatible_names('fr'))

    def test_get_compatible_names_defaults_to_current_locale(self):
        us = create_concept_name('Color', 'en_US')
        gb = create_concept_name('Colour', 'en_GB')
        concept = create_concept(names=[us, gb])

        self.assertEqual([us], concept.get_compatible_names())
        with translation.override('en-gb'):
            self.assertEqual([gb], concept.get_compatible_names())

    def test_compatible_names_follow_add_and_remove(self):
        concept = create_concept(names=[create_concept_name('Fever', 'en')])
        self.assertEqual(1, len(concept.get_compatible_names('en_GB')))

        pyrexia = create_concept_name('Pyrexia', 'en_GB')
        concept.add_name(pyrexia)
        self.assertEqual(['Fever', 'Pyrexia'], [n.name for n in concept.get_compatible_names('en_GB')])

        concept.remove_name(pyrexia)
        self.assertEqual(['Fever'], [n.name for n in concept.get_compatible_names('en_GB')])

    def test_compatible_names_follow_void_and_unvoid(self):
        fever = create_concept_name('Fever', 'en')
        concept = create_concept(names=[fever])
        self.assertEqual([fever], concept.get_compatible_names('en'))

        self.assertTrue(concept.void_name(fever, voided_by='admin', reason='duplicate'))
        self.assertTrue(fever.voided)
        self.assertEqual('duplicate', fever.void_reason)
        self.assertIsNotNone(fever.date_voided)
        self.assertEqual([], concept.get_compatible_names('en'))
        self.assertFalse(concept.void_name(fever))

        self.assertTrue(concept.unvoid_name(fever))
        self.assertFalse(fever.voided)
        self.assertIsNone(fever.date_voided)
        self.assertEqual([fever], concept.get_compatible_names('en'))
        self.assertFalse(concept.unvoid_name(fever))

    def test_compatible_names_exclude_name_voided_after_caching(self):
        alpha = create_concept_name('Alpha', 'en')
        beta = create_concept_name('Beta', 'en')
        concept = create_concept(names=[alpha, beta])
        self.assertEqual([alpha, beta], concept.get_compatible_names('en'))

        alpha.voided = True

        self.assertEqual([beta], concept.get_compatible_names('en'))
        self.assertIs(beta, concept.get_best_name('en'))
        self.assertIs(beta, concept.get_name('en'))

    def test_name_with_invalid_locale_is_skipped(self):
        fever = create_concept_name('Fever', 'en')
        odd = ConceptName(name='Odd')
        concept = create_concept(names=[fever, odd])

        with self.assertLogs('dictapi', level='WARNING') as logs:
            self.assertEqual([fever], concept.get_compatible_names('en'))
        self.assertIn('invalid locale', logs.output[0])

        self.assertIs(fever, concept.get_best_name('en'))
        self.assertIs(fever, concept.get_name('en'))
        self.assertIsNone(concept.get_preferred_name('en'))
        self.assertIs(fever, concept.get_best_short_name('en'))
        self.assertEqual([], concept.get_names_for_locale('fr'))
        self.assertEqual([], concept.get_synonyms('en'))
        self.assertFalse(odd.locale_preferred)
        self.assertIsNone(odd.parsed_locale)

    def test_description_with_invalid_locale_is_skipped(self):
        odd = ConceptDescription(description='Odd')
        fever = create_description('A raised body temperature', 'en')
        concept = create_concept(descriptions=[odd, fever])

        self.assertIs(fever, concept.get_description('en_GB'))
        self.assertIs(fever, concept.get_description('de'))
        self.assertIsNone(concept.get_description('de', exact=True))

    def test_compatible_names_match_recomputation_after_any_mutations(self):
        rng = random.Random(42)
        locales = ['en', 'en_GB', 'en_US', 'fr', 'fr_CA', 'es']
        concept = create_concept()
        pool = []
        for step in range(200):
            operation = rng.choice(['add', 'add', 'remove', 'void', 'read'])
            if operation == 'add':
                name = create_concept_name('name%d' % step, rng.choice(locales))
                pool.append(name)
                concept.add_name(name)
            elif operation == 'remove' and pool:
                concept.remove_name(rng.choice(pool))
            elif operation == 'void' and pool:
                concept.void_name(rng.choice(pool))
            concept.get_compatible_names(rng.choice(locales))

        for locale in locales:
            expected = [n for n in concept.get_names() if are_compatible(n.parsed_locale, locale)]
            self.assertEqual(expected, concept.get_compatible_names(locale))

    def test_get_name_known_as(self):
        fever = create_concept_name('Fever', 'en')
        concept = create_concept(names=[fever, create_concept_name('Fever', 'en_GB')])

        self.assertIs(fever, concept.get_name_known_as('Fever', 'en'))
        self.assertIsNone(concept.get_name_known_as('Fever', 'en_US'))
        self.assertIsNone(concept.get_name_known_as('Pyrexia', 'en'))

    def test_has_name_and_is_named(self):
        concept = create_concept(names=[create_concept_name('Fever', 'en'),
                                        create_concept_name('Old', 'en', voided=True)])

        self.assertTrue(concept.has_name('Fever'))
        self.assertTrue(concept.has_name('Fever', 'en'))
        self.assertFalse(concept.has_name('Fever', 'fr'))
        self.assertFalse(concept.has_name(None))
        self.assertTrue(concept.is_named('Fever'))
        self.assertFalse(concept.is_named('Old'))

    def test_get_synonyms(self):
        synonym = create_concept_name('Pyrexia', 'en_GB', tags=[tags.SYNONYM])
        concept = create_concept(names=[create_concept_name('Fever', 'en'), synonym,
                                        create_concept_name('Calentura', 'es', tags=[tags.SYNONYM])])

        self.assertEqual([synonym], concept.get_synonyms('en'))
        self.assertEqual([synonym], concept.get_synonyms('en_US'))
        self.assertEqual([], concept.get_synonyms('fr'))

    def test_add_and_remove_name_tag(self):
        fever = create_concept_name('Fever', 'en')
        concept = create_concept(names=[fever])

        self.assertTrue(concept.add_name_tag(fever, 'synonym'))
        self.assertTrue(fever.is_synonym)
        self.assertTrue(concept.remove_name_tag(fever, tags.SYNONYM))
        self.assertFalse(fever.is_synonym)
        self.assertFalse(concept.remove_name_tag(fever, tags.SYNONYM))
        self.assertFalse(concept.add_name_tag(create_concept_name('Stranger'), tags.PREFERRED))

        with self.assertRaises(ValueError):
            concept.add_name_tag(fever, 'FAVOURITE')

    @override_settings(DEFAULT_LOCALE='fr')
    def test_names_for_default_locale(self):
        concept = create_concept(names=[create_concept_name('Fever', 'en'), create_concept_name('Fièvre', 'fr')])
        self.assertEqual(['Fièvre'], concept.names_for_default_locale)


class ConceptDesignationTest(DictApiBaseTestCase):

    def test_set_preferred_name_in_language(self):
        concept = create_concept()
        fever = create_concept_name('Fever', 'en')

        self.assertIs(fever, concept.set_preferred_name('en', fever))
        self.assertTrue(fever.has_tag(PREFERRED_EN))
        self.assertIs(fever, concept.get_preferred_name_in_language('en'))
        self.assertIn(fever, concept.get_names())

    def test_set_preferred_name_in_language_moves_designation(self):
        concept = create_concept()
        fever = create_concept_name('Fever', 'en')
        pyrexia = create_concept_name('Pyrexia', 'en')
        concept.set_preferred_name('en', fever)
        concept.set_preferred_name('en', pyrexia)

        self.assertFalse(fever.has_tag(PREFERRED_EN))
        self.assertIs(pyrexia, concept.get_preferred_name_in_language('en'))

    def test_set_preferred_name_for_country_also_claims_free_language(self):
        concept = create_concept()
        pyrexia = create_concept_name('Pyrexia', 'en_GB')
        concept.set_preferred_name('en_GB', pyrexia)

        self.assertTrue(pyrexia.has_tag(PREFERRED_GB))
        self.assertTrue(pyrexia.has_tag(PREFERRED_EN))

    def test_set_preferred_name_for_country_keeps_existing_language_holder(self):
        concept = create_concept()
        x = create_concept_name('Pyrexia', 'en_GB')
        y = create_concept_name('Fever', 'en_US')
        concept.set_preferred_name('en_GB', x)
        concept.set_preferred_name('en_US', y)

        self.assertIs(x, concept.get_preferred_name_for_country('GB'))
        self.assertIs(y, concept.get_preferred_name_for_country('US'))
        self.assertIs(x, concept.get_preferred_name_in_language('en'))
        self.assertFalse(y.has_tag(PREFERRED_EN))

    def test_set_preferred_name_for_country_replaces_country_holder(self):
        concept = create_concept()
        first = create_concept_name('Pyrexia', 'en_GB')
        second = create_concept_name('Febrile', 'en_GB')
        concept.set_preferred_name('en_GB', first)
        concept.set_preferred_name('en_GB', second)

        self.assertEqual([second], holders_of(concept, PREFERRED_GB))
        self.assertEqual([first], holders_of(concept, PREFERRED_EN))

    def test_set_preferred_name_is_idempotent(self):
        concept = create_concept()
        concept.set_preferred_name('en_GB', create_concept_name('Pyrexia', 'en_GB'))
        concept.set_preferred_name('en_GB', create_concept_name('Pyrexia', 'en_GB'))

        self.assertEqual(1, len(concept.get_names()))
        self.assertEqual(1, len(holders_of(concept, PREFERRED_GB)))
        self.assertEqual(1, len(holders_of(concept, PREFERRED_EN)))

    def test_set_preferred_name_reuses_name_with_same_text_and_locale(self):
        fever = create_concept_name('Fever', 'en')
        concept = create_concept(names=[fever])
        duplicate = create_concept_name('Fever', 'en')

        designated = concept.set_preferred_name('en', duplicate)

        self.assertIs(fever, designated)
        self.assertTrue(fever.has_tag(PREFERRED_EN))
        self.assertFalse(duplicate.has_tag(PREFERRED_EN))
        self.assertEqual([fever], concept.get_names())

    def test_set_preferred_name_none_is_ignored(self):
        concept = create_concept()
        self.assertIsNone(concept.set_preferred_name('en', None))
        self.assertEqual([], concept.get_names())

    def test_set_preferred_name_defaults_to_current_locale(self):
        concept = create_concept()
        color = create_concept_name('Color', 'en_US')
        concept.set_preferred_name(None, color)

        self.assertIs(color, concept.get_preferred_name_for_country('US'))

    def test_designations_stay_exclusive(self):
        rng = random.Random(7)
        locales = ['en', 'en_GB', 'en_US', 'en_KE', 'fr', 'fr_CA']
        concept = create_concept()
        for step in range(60):
            locale = rng.choice(locales)
            name = create_concept_name('name%d' % rng.randint(0, 15), locale)
            if rng.random() < 0.5:
                concept.set_preferred_name(locale, name)
            else:
                concept.set_short_name(locale, name)

            held = {}
            for candidate in concept.get_names():
                for tag in candidate.tags:
                    if tags.is_scoped_tag(tag):
                        held[tag] = held.get(tag, 0) + 1
            self.assertTrue(all(count == 1 for count in held.values()), held)

        concept.clean()

    def test_voided_holder_loses_designation(self):
        concept = create_concept()
        old = create_concept_name('Old', 'en')
        concept.set_preferred_name('en', old)
        concept.void_name(old)
        new = create_concept_name('New', 'en')
        concept.set_preferred_name('en', new)
        concept.unvoid_name(old)

        self.assertEqual([new], holders_of(concept, PREFERRED_EN))

    def test_set_short_name_mirrors_preferred(self):
        concept = create_concept()
        first = create_concept_name('FVR', 'en_GB')
        second = create_concept_name('FEV', 'en_GB')
        concept.set_short_name('en_GB', first)
        concept.set_short_name('en_GB', second)

        self.assertIs(second, concept.get_short_name_for_country('GB'))
        self.assertIs(first, concept.get_short_name_in_language('en'))
        self.assertEqual([], holders_of(concept, PREFERRED_GB))
        self.assertEqual([], holders_of(concept, PREFERRED_EN))

    def test_set_short_name_does_not_touch_preferred_names(self):
        fever = create_concept_name('Fever', 'en_GB')
        concept = create_concept()
        concept.set_preferred_name('en_GB', fever)
        concept.set_short_name('en_GB', create_concept_name('FVR', 'en_GB'))

        self.assertIs(fever, concept.get_preferred_name_for_country('GB'))
        self.assertFalse(fever.has_tag(tags.short_country_tag('GB')))

    def test_get_short_name_in_locale(self):
        full = create_concept_name('Fever', 'en_GB')
        tagged = create_concept_name('Fev', 'en', tags=[tags.SHORT])
        concept = create_concept(names=[full, tagged])

        self.assertIs(tagged, concept.get_short_name_in_locale('en_GB'))
        concept.set_short_name('en_GB', full)
        self.assertIs(full, concept.get_short_name_in_locale('en_GB'))
        self.assertIs(full, concept.get_short_name_in_locale('en'))
        self.assertIsNone(concept.get_short_name_in_locale('fr'))


class ConceptNameResolutionTest(DictApiBaseTestCase):

    def setUp(self):
        super(ConceptNameResolutionTest, self).setUp()
        self.fever = create_concept_name('Fever', 'en', tags=[PREFERRED_EN])
        self.pyrexia = create_concept_name('Pyrexia', 'en_GB', tags=[PREFERRED_GB])
        self.fiebre = create_concept_name('Fiebre', 'es')
        self.concept = create_concept(names=[self.fever, self.pyrexia, self.fiebre])

    def test_get_best_name_prefers_country_designation(self):
        self.assertIs(self.pyrexia, self.concept.get_best_name('en_GB'))

    def test_get_best_name_single_compatible_name(self):
        self.assertIs(self.fever, self.concept.get_best_name('en_US'))

    def test_get_best_name_falls_back_to_first_name(self):
        self.assertIs(self.fever, self.concept.get_best_name('fr'))

    def test_get_best_name_never_empty_when_names_exist(self):
        for locale in ['en', 'en_GB', 'en_US', 'es', 'es_MX', 'fr', 'zh_CN', 'eng']:
            self.assertIsNotNone(self.concept.get_best_name(locale), locale)

    def test_get_best_name_language_designation_beats_generic(self):
        generic = create_concept_name('Generic', 'en', tags=[tags.PREFERRED])
        language = create_concept_name('Language', 'en', tags=[PREFERRED_EN])
        plain = create_concept_name('Plain', 'en')
        concept = create_concept(names=[plain, generic, language])

        self.assertIs(language, concept.get_best_name('en_US'))
        self.assertIs(language, concept.get_best_name('en_GB'))

    def test_get_best_name_exact_locale_preferred_wins(self):
        exact = create_concept_name('Exact', 'en_US', tags=[tags.PREFERRED])
        language = create_concept_name('Language', 'en', tags=[PREFERRED_EN])
        concept = create_concept(names=[exact, language])

        self.assertIs(exact, concept.get_best_name('en_US'))

    def test_get_name_with_no_names(self):
        concept = create_concept()
        with self.assertLogs('dictapi', level='DEBUG') as logs:
            self.assertIsNone(concept.get_name('en_US'))
            self.assertIsNone(concept.get_name('en_US', exact=True))
            self.assertIsNone(concept.get_best_name('en_US'))
            self.assertIsNone(concept.get_best_short_name('en_US'))
            self.assertIsNone(concept.get_preferred_name('en_US'))
            self.assertIsNone(concept.get_shortest_name('en_US'))
        self.assertIn('there are no names defined', logs.output[0])

    def test_get_name_exact_locale_preferred(self):
        alpha = create_concept_name('Alpha', 'en_GB', tags=[tags.PREFERRED])
        concept = create_concept(names=[alpha])

        self.assertIs(alpha, concept.get_name('en_GB', exact=True))

    def test_get_name_generic_preferred_is_not_exact_in_other_locale(self):
        alpha = create_concept_name('Alpha', 'en', tags=[tags.PREFERRED])
        concept = create_concept(names=[alpha])

        self.assertIsNone(concept.get_name('en_GB', exact=True))
        self.assertIs(alpha, concept.get_name('en_GB'))

    def test_get_name_country_designation(self):
        self.assertIs(self.pyrexia, self.concept.get_name('en_GB'))
        self.assertIs(self.pyrexia, self.concept.get_name('en_GB', exact=True))

    def test_get_name_with_country_ranks_language_above_generic(self):
        generic = create_concept_name('Generic', 'en', tags=[tags.PREFERRED])
        language = create_concept_name('Language', 'en', tags=[PREFERRED_EN])
        concept = create_concept(names=[generic, language])

        self.assertIs(language, concept.get_name('en_US'))
        self.assertIsNone(concept.get_name('en_US', exact=True))

    def test_get_name_without_country_language_designation_is_exact(self):
        generic = create_concept_name('Generic', 'en_GB', tags=[tags.PREFERRED])
        language = create_concept_name('Language', 'en_US', tags=[PREFERRED_EN])
        concept = create_concept(names=[generic, language])

        self.assertIs(language, concept.get_name('en'))
        self.assertIs(language, concept.get_name('en', exact=True))

    def test_get_name_without_country_prefers_generic_over_untagged(self):
        plain = create_concept_name('Plain', 'en_GB')
        generic = create_concept_name('Generic', 'en_US', tags=[tags.PREFERRED])
        concept = create_concept(names=[plain, generic])

        self.assertIs(generic, concept.get_name('en'))
        self.assertIsNone(concept.get_name('en', exact=True))

    def test_get_name_first_compatible(self):
        xeno = create_concept_name('Xeno', 'fr')
        yellow = create_concept_name('Yellow', 'en')
        zed = create_concept_name('Zed', 'en')
        concept = create_concept(names=[xeno, yellow, zed])

        self.assertIs(yellow, concept.get_name('en_US'))
        self.assertIsNone(concept.get_name('en_US', exact=True))

    def test_get_name_falls_back_to_any_name(self):
        xeno = create_concept_name('Xeno', 'fr')
        concept = create_concept(names=[xeno])

        self.assertIs(xeno, concept.get_name('de'))
        self.assertIsNone(concept.get_name('de', exact=True))

    def test_get_name_ignores_voided_names(self):
        voided = create_concept_name('Void', 'en', tags=[PREFERRED_EN], voided=True)
        word = create_concept_name('Word', 'en')
        concept = create_concept(names=[voided, word])

        self.assertIs(word, concept.get_name('en'))
        self.assertIsNone(concept.get_name('en', exact=True))

    def test_get_name_uses_current_locale(self):
        color = create_concept_name('Color', 'en_US')
        colour = create_concept_name('Colour', 'en_GB')
        concept = create_concept(names=[color, colour])

        self.assertIs(color, concept.get_name())
        with translation.override('en-gb'):
            self.assertIs(colour, concept.get_name())

    def test_display_name(self):
        self.assertEqual('Fever', self.concept.display_name)
        self.assertEqual('en', self.concept.display_locale)
        with translation.override('en-gb'):
            self.assertEqual('Pyrexia', self.concept.display_name)
            self.assertEqual('Pyrexia', self.concept.get_display_string())

    def test_display_string_without_names(self):
        concept = create_concept(mnemonic='empty')
        self.assertIsNone(concept.display_name)
        self.assertEqual('empty', concept.get_display_string())

    def test_get_preferred_name_requires_designation(self):
        plain = create_concept_name('Plain', 'en')
        concept = create_concept(names=[plain])

        self.assertIsNone(concept.get_preferred_name('en'))
        self.assertIsNone(concept.get_preferred_name('en_GB'))

    def test_get_preferred_name_generic(self):
        plain = create_concept_name('Plain', 'en')
        generic = create_concept_name('Generic', 'en', tags=[tags.PREFERRED])
        concept = create_concept(names=[plain, generic])

        self.assertIs(generic, concept.get_preferred_name('en'))
        self.assertIs(generic, concept.get_preferred_name('en_US'))

    def test_get_preferred_name_by_scope(self):
        self.assertIs(self.pyrexia, self.concept.get_preferred_name('en_GB'))
        self.assertIs(self.fever, self.concept.get_preferred_name('en_US'))
        self.assertIs(self.fever, self.concept.get_preferred_name('en'))
        self.assertIsNone(self.concept.get_preferred_name('es'))
        self.assertIsNone(self.concept.get_preferred_name('fr'))

    def test_get_best_short_name(self):
        full = create_concept_name('Acquired immunodeficiency syndrome', 'en', tags=[PREFERRED_EN])
        aids = create_concept_name('AIDS', 'en', tags=[SHORT_EN])
        sida = create_concept_name('SIDA', 'fr', tags=[tags.short_language_tag('fr')])
        concept = create_concept(names=[full, aids, sida])

        self.assertIs(aids, concept.get_best_short_name('en'))
        self.assertIs(aids, concept.get_best_short_name('en_GB'))
        self.assertIs(sida, concept.get_best_short_name('fr'))
        self.assertIs(full, concept.get_best_short_name('de'))

    def test_get_best_short_name_country_designation(self):
        full = create_concept_name('Fever', 'en')
        short_gb = create_concept_name('Fev', 'en_GB', tags=[tags.short_country_tag('GB')])
        short_en = create_concept_name('FVR', 'en', tags=[SHORT_EN])
        concept = create_concept(names=[full, short_en, short_gb])

        self.assertIs(short_gb, concept.get_best_short_name('en_GB'))
        self.assertIs(short_en, concept.get_best_short_name('en_US'))

    def test_get_best_short_name_generic_short(self):
        full = create_concept_name('Full', 'en')
        generic = create_concept_name('Gen short', 'en', tags=[tags.SHORT])
        language = create_concept_name('Lang short', 'en', tags=[SHORT_EN])
        concept = create_concept(names=[full, generic, language])

        # without a country a generic short name ends the search like a language designation
        self.assertIs(generic, concept.get_best_short_name('en'))
        self.assertIs(language, concept.get_best_short_name('en_US'))

    def test_get_best_short_name_short_name_type(self):
        full = create_concept_name('Fever', 'en')
        short = create_concept_name('FVR', 'en', type='SHORT')
        concept = create_concept(names=[full, short])

        self.assertIs(short, concept.get_best_short_name('en'))
        self.assertIs(short, concept.get_best_short_name('en_KE'))

    def test_get_shortest_name(self):
        self.assertIs(self.fever, self.concept.get_shortest_name('en'))

    def test_get_shortest_name_ties_go_to_first(self):
        abc = create_concept_name('abc', 'en')
        xyz = create_concept_name('xyz', 'fr')
        concept = create_concept(names=[abc, xyz])

        self.assertIs(abc, concept.get_shortest_name('fr'))

    def test_get_shortest_name_ignores_locale(self):
        # known oddity: the shortest name is searched across all locales
        self.assertIs(self.fever, self.concept.get_shortest_name('es'))
        self.assertIs(self.fever, self.concept.get_shortest_name('zh'))

    def test_get_shortest_name_exact_finds_nothing(self):
        # known oddity: since the search ignores the locale, exact never finds a match
        with self.assertLogs('dictapi', level='WARNING'):
            self.assertIsNone(self.concept.get_shortest_name('en', exact=True))


class ConceptDescriptionTest(DictApiBaseTestCase):

    def setUp(self):
        super(ConceptDescriptionTest, self).setUp()
        self.en = create_description('A raised body temperature', 'en')
        self.fr = create_description('Une température élevée', 'fr')
        self.gb = create_description('A raised body temperature, British', 'en_GB')
        self.concept = create_concept(descriptions=[self.en, self.fr, self.gb])

    def test_add_description(self):
        concept = create_concept()
        description = create_description('Something')

        self.assertTrue(concept.add_description(description))
        self.assertFalse(concept.add_description(description))
        self.assertFalse(concept.add_description(None))
        self.assertIs(concept, description.concept)
        self.assertEqual([description], concept.get_descriptions())

    def test_remove_description(self):
        self.assertTrue(self.concept.remove_description(self.fr))
        self.assertFalse(self.concept.remove_description(self.fr))
        self.assertEqual([self.en, self.gb], self.concept.descriptions)

    def test_exact_locale_wins(self):
        self.assertIs(self.gb, self.concept.get_description('en_GB'))
        self.assertIs(self.gb, self.concept.get_description('en_GB', exact=True))

    def test_compatible_locale(self):
        self.assertIs(self.en, self.concept.get_description('en_US'))
        self.assertIs(self.fr, self.concept.get_description('fr_CA'))

    def test_first_compatible_is_kept(self):
        first = create_description('One', 'en_GB')
        second = create_description('Two', 'en_US')
        concept = create_concept(descriptions=[first, second])

        self.assertIs(first, concept.get_description('en'))

    def test_default_locale_fallback(self):
        self.assertIs(self.en, self.concept.get_description('de'))

    def test_exact_has_no_fallback(self):
        self.assertIsNone(self.concept.get_description('de', exact=True))
        self.assertIsNone(self.concept.get_description('en_US', exact=True))

    @override_settings(DEFAULT_LOCALE='fr')
    def test_configured_default_locale(self):
        self.assertIs(self.fr, self.concept.get_description('de'))

    def test_no_description(self):
        concept = create_concept(descriptions=[create_description('Beschreibung', 'de')])
        self.assertIsNone(concept.get_description('es'))
        self.assertIsNone(create_concept().get_description('en'))

    def test_current_locale(self):
        self.assertIs(self.en, self.concept.get_description())
        with translation.override('en-gb'):
            self.assertIs(self.gb, self.concept.get_description())

    def test_descriptions_for_default_locale(self):
        self.assertEqual(['A raised body temperature'], self.concept.descriptions_for_default_locale)


class ConceptValidationTest(DictApiBaseTestCase):

    def test_valid_concept(self):
        concept = create_concept(names=[create_concept_name('Fever')],
                                 descriptions=[create_description('A raised body temperature')])
        concept.clean()

    def test_concept_must_have_names(self):
        concept = create_concept(names=[create_concept_name('Old', voided=True)])
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'names': [BASIC_NAMES_CANNOT_BE_EMPTY]}, context.exception.message_dict)

    def test_concept_class_is_required(self):
        concept = create_concept(names=[create_concept_name('Fever')], concept_class='')
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'concept_class': [BASIC_CONCEPT_CLASS_CANNOT_BE_EMPTY]}, context.exception.message_dict)

    def test_name_locale_must_be_valid(self):
        concept = create_concept(names=[create_concept_name('Fever', locale='')])
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertIn('names', context.exception.message_dict)

    def test_description_cannot_be_empty(self):
        concept = create_concept(names=[create_concept_name('Fever')], descriptions=[create_description('  ')])
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertIn('descriptions', context.exception.message_dict)

    def test_unknown_tag(self):
        fever = create_concept_name('Fever', tags=['FAVOURITE'])
        concept = create_concept(names=[fever])
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'names': [message_with_name_details(TAG_UNKNOWN, fever)]}, context.exception.message_dict)

    def test_scoped_tag_held_twice(self):
        fever = create_concept_name('Fever', 'en')
        pyrexia = create_concept_name('Pyrexia', 'en')
        concept = create_concept(names=[fever, pyrexia])
        concept.add_name_tag(fever, PREFERRED_EN)
        concept.add_name_tag(pyrexia, PREFERRED_EN)

        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'names': [message_with_name_details(TAG_HELD_BY_MORE_THAN_ONE_NAME, pyrexia)]},
                         context.exception.message_dict)

    def test_generic_tags_may_be_shared(self):
        concept = create_concept(names=[create_concept_name('Fever', tags=[tags.SYNONYM]),
                                        create_concept_name('Pyrexia', tags=[tags.SYNONYM])])
        concept.clean()

    def test_numeric_details_only_for_numeric_concepts(self):
        concept = create_concept(names=[create_concept_name('Temperature')], numeric_details={'units': 'C'})
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'numeric_details': [NUMERIC_DETAILS_ONLY_FOR_NUMERIC_CONCEPTS]},
                         context.exception.message_dict)

    def test_numeric_ranges_must_be_ordered(self):
        concept = create_concept(names=[create_concept_name('Temperature')], kind=CONCEPT_KIND_NUMERIC,
                                 numeric_details={'low_normal': 38.0, 'hi_normal': 36.0})
        with self.assertRaises(ValidationError) as context:
            concept.clean()
        self.assertEqual({'numeric_details': [NUMERIC_RANGES_OUT_OF_ORDER]}, context.exception.message_dict)

    def test_validation_can_be_disabled(self):
        concept = create_concept()
        with mock.patch.dict(os.environ, {'DISABLE_VALIDATION': '1'}):
            concept.clean()

    def test_message_with_name_details(self):
        fever = create_concept_name('Fever', 'en', tags=[PREFERRED_EN])
        self.assertEqual('Oops: Fever (locale: en, preferred: yes)', message_with_name_details('Oops', fever))
        self.assertEqual('Oops', message_with_name_details('Oops', None))


class ConceptTest(DictApiBaseTestCase):

    def test_coded_concept_has_no_numeric_details(self):
        concept = create_concept()
        self.assertEqual(CONCEPT_KIND_CODED, concept.kind)
        self.assertFalse(concept.is_numeric)
        self.assertIsNone(concept.numeric)

    def test_numeric_concept(self):
        concept = create_concept(kind=CONCEPT_KIND_NUMERIC,
                                 numeric_details={'low_normal': 36.1, 'hi_normal': 37.2, 'units': 'C', 'other': 1})
        self.assertTrue(concept.is_numeric)
        self.assertEqual(NumericRange(low_normal=36.1, hi_normal=37.2, units='C'), concept.numeric)
        self.assertFalse(concept.numeric.precise)

    def test_retire(self):
        concept = create_concept()
        self.assertEqual({}, concept.retire('admin', 'Duplicate'))
        self.assertTrue(concept.retired)
        self.assertEqual('Duplicate', concept.retire_reason)
        self.assertEqual({'__all__': CONCEPT_ALREADY_RETIRED}, concept.retire('admin'))

        self.assertEqual({}, concept.unretire('admin'))
        self.assertFalse(concept.retired)
        self.assertEqual({'__all__': CONCEPT_NOT_RETIRED}, concept.unretire('admin'))

    def test_name_properties(self):
        name = create_concept_name('Fever', 'en_GB', tags=[PREFERRED_GB, tags.SYNONYM])
        self.assertTrue(name.locale_preferred)
        self.assertTrue(name.is_synonym)
        self.assertTrue(name.is_fully_specified)
        self.assertFalse(name.is_short)
        self.assertFalse(name.is_preferred)
        self.assertFalse(create_concept_name('Fever', 'en_GB', tags=[PREFERRED_EN]).locale_preferred)

    def test_clone_keeps_identity(self):
        name = create_concept_name('Fever', tags=[tags.SYNONYM])
        clone = name.clone()
        self.assertEqual(name, clone)
        self.assertEqual(name.tags, clone.tags)
        self.assertIsNot(name.tags, clone.tags)

    def test_pickle_round_trip_keeps_names(self):
        concept = create_concept(names=[create_concept_name('Fever', 'en', tags=[PREFERRED_EN]),
                                        create_concept_name('Fiebre', 'es')],
                                 descriptions=[create_description('A raised body temperature')])
        concept.get_compatible_names('en')

        restored = pickle.loads(pickle.dumps(concept))

        self.assertEqual(['Fever', 'Fiebre'], [n.name for n in restored.get_names()])
        self.assertEqual('Fiebre', restored.get_best_name('es').name)
        restored.add_name(create_concept_name('Pyrexia', 'en_GB'))
        self.assertEqual(['Fever', 'Pyrexia'], [n.name for n in restored.get_compatible_names('en_GB')])
        self.assertEqual(1, len(restored.get_descriptions()))

    def test_concurrent_reads_and_writes(self):
        concept = create_concept(names=[create_concept_name('Fever', 'en', tags=[PREFERRED_EN])])
        locales = ['en', 'en_GB', 'fr']
        errors = []

        def writer(offset):
            try:
                for i in range(50):
                    locale = locales[i % len(locales)]
                    name = create_concept_name('name-%d-%d' % (offset, i), locale)
                    if i % 7 == 0:
                        concept.set_preferred_name(locale, name)
                    else:
                        concept.add_name(name)
            except Exception as e:
                errors.append(e)

        def reader():
            try:
                for _ in range(100):
                    for name in concept.get_compatible_names('en_GB'):
                        if not are_compatible(name.parsed_locale, 'en_GB'):
                            errors.append(AssertionError('incompatible name %s' % name))
                    if concept.get_best_name('en_GB') is None:
                        errors.append(AssertionError('no best name'))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual([], errors)
        self.assertEqual(201, len(concept.get_names()))
        expected = [n for n in concept.get_names() if are_compatible(n.parsed_locale, 'en_GB')]
        self.assertEqual(expected, concept.get_compatible_names('en_GB'))
        concept.clean()


FEVER_DATA = {
    'id': 'fever',
    'concept_class': 'Diagnosis',
    'datatype': 'N/A',
    'names': [
        {'name': 'Fever', 'locale': 'en', 'locale_preferred': True, 'name_type': 'FULLY_SPECIFIED'},
        {'name': 'Pyrexia', 'locale': 'en-gb', 'locale_preferred': True},
        {'name': 'FVR', 'locale': 'en', 'name_type': 'SHORT'},
        {'name': 'Fiebre', 'locale': 'es', 'tags': ['synonym']},
    ],
    'descriptions': [
        {'description': 'A raised body temperature', 'locale': 'en', 'description_type': 'Definition'},
    ],
}


class ConceptSerializerTest(DictApiBaseTestCase):

    def build(self, data):
        serializer = ConceptDetailSerializer(data=data)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        return serializer.save()

    def test_create_concept(self):
        concept = self.build(FEVER_DATA)

        self.assertEqual('fever', concept.mnemonic)
        self.assertEqual(['Fever', 'Pyrexia', 'FVR', 'Fiebre'], [n.name for n in concept.get_names()])
        self.assertEqual('en_GB', concept.get_name_known_as('Pyrexia', 'en_GB').locale)
        self.assertEqual('Pyrexia', concept.get_best_name('en_GB').name)
        self.assertEqual('Fever', concept.get_best_name('en_US').name)
        self.assertEqual('FVR', concept.get_best_short_name('en').name)
        self.assertEqual(['Fiebre'], [n.name for n in concept.get_synonyms('es')])
        self.assertEqual('A raised body temperature', concept.get_description('en_US').description)

    def test_representation(self):
        concept = self.build(FEVER_DATA)
        data = ConceptDetailSerializer(concept).data

        self.assertEqual('fever', data['id'])
        self.assertEqual('Fever', data['display_name'])
        self.assertEqual('en', data['display_locale'])
        self.assertEqual([True, True, False, False], [n['locale_preferred'] for n in data['names']])
        self.assertEqual(['SYNONYM'], data['names'][3]['tags'])
        self.assertEqual('SHORT', data['names'][2]['name_type'])
        self.assertEqual('Definition', data['descriptions'][0]['description_type'])

    def test_list_representation(self):
        data = ConceptListSerializer(self.build(FEVER_DATA)).data
        self.assertEqual('Fever', data['display_name'])
        self.assertEqual('Coded', data['kind'])

    def test_names_are_required(self):
        data = dict(FEVER_DATA, names=[])
        serializer = ConceptDetailSerializer(data=data)
        self.assertFalse(serializer.is_valid())
        self.assertIn('names', serializer.errors)

    def test_unknown_tag_is_rejected(self):
        serializer = ConceptNameSerializer(data={'name': 'Fever', 'locale': 'en', 'tags': ['FAVOURITE']})
        self.assertFalse(serializer.is_valid())
        self.assertIn('tags', serializer.errors)

    def test_invalid_locale_is_rejected(self):
        serializer = ConceptNameSerializer(data={'name': 'Fever', 'locale': '-GB'})
        self.assertFalse(serializer.is_valid())
        self.assertIn('locale', serializer.errors)

    def test_invalid_mnemonic_is_rejected(self):
        serializer = ConceptDetailSerializer(data=dict(FEVER_DATA, id='not valid!'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('id', serializer.errors)

    def test_conflicting_designations_fail_validation(self):
        data = dict(FEVER_DATA, names=[
            {'name': 'Fever', 'locale': 'en', 'tags': ['PREFERRED_LANGUAGE:en']},
            {'name': 'Pyrexia', 'locale': 'en', 'tags': ['preferred_language:EN']},
        ])
        serializer = ConceptDetailSerializer(data=data)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        with self.assertRaises(serializers.ValidationError):
            serializer.save()

    def test_numeric_concept(self):
        data = dict(FEVER_DATA, kind='Numeric', numeric_details={'low_normal': 36.1, 'hi_normal': 37.2, 'units': 'C'})
        concept = self.build(data)
        self.assertTrue(concept.is_numeric)
        self.assertEqual('C', concept.numeric.units)

    def test_name_serializer_creates_unattached_name(self):
        serializer = ConceptNameSerializer(data={'name': 'Fever', 'locale': 'EN', 'locale_preferred': True})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        name = serializer.save()
        self.assertIsInstance(name, ConceptName)
        self.assertEqual('en', name.locale)
        self.assertEqual([], name.tags)
        self.assertIsNone(name.concept)


class ResolveConceptNamesCommandTest(DictApiBaseTestCase):

    def setUp(self):
        super(ResolveConceptNamesCommandTest, self).setUp()
        handle, self.path = tempfile.mkstemp(suffix='.json')
        with os.fdopen(handle, 'w', encoding='utf-8') as output:
            output.write(json.dumps(FEVER_DATA) + '\n')
            output.write('this is not json\n')
            output.write('\n')
            output.write(json.dumps({'id': 'nameless', 'concept_class': 'Misc', 'names': []}) + '\n')
        self.addCleanup(os.remove, self.path)

    def run_command(self, *args):
        stdout = StringIO()
        stderr = StringIO()
        call_command('resolve_concept_names', self.path, *args, stdout=stdout, stderr=stderr)
        return stdout.getvalue().splitlines(), stderr.getvalue()

    def test_resolves_names_per_locale(self):
        lines, errors = self.run_command('--locale', 'en_GB', '--locale', 'en_US')

        self.assertEqual(['fever\ten_GB\tPyrexia', 'fever\ten_US\tFever', 'Handled 3 concepts, 2 with errors'], lines)
        self.assertIn('Failed to parse line 2', errors)
        self.assertIn('Validation failed on line 4', errors)

    def test_short_name_and_description(self):
        lines, _ = self.run_command('--locale', 'en', '--short', '--description')
        self.assertEqual('fever\ten\tFever\tFVR\tA raised body temperature', lines[0])

    def test_current_locale(self):
        lines, _ = self.run_command()
        self.assertEqual('fever\tcurrent\tFever', lines[0])

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('resolve_concept_names', self.path + '.missing', stdout=StringIO(), stderr=StringIO())
