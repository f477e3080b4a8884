import importlib.util
import os
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings
from django.utils import translation

from dictapi.locales import Locale, are_compatible, get_current_locale, get_default_locale, resolve_locale
from dictapi.settings import local


class LocaleTest(SimpleTestCase):

    def test_parse_language_only(self):
        locale = Locale.parse('en')
        self.assertEqual('en', locale.language)
        self.assertIsNone(locale.country)
        self.assertFalse(locale.has_country)

    def test_parse_normalizes_separators_and_case(self):
        self.assertEqual(Locale('en', 'GB'), Locale.parse('en_GB'))
        self.assertEqual(Locale('en', 'GB'), Locale.parse('en-gb'))
        self.assertEqual(Locale('en', 'GB'), Locale.parse('EN-GB'))
        self.assertEqual('en_GB', Locale.parse('en-gb').code)
        self.assertEqual('en_GB', str(Locale.parse('en-gb')))

    def test_parse_empty_country_is_none(self):
        self.assertIsNone(Locale.parse('en_').country)
        self.assertIsNone(Locale('en', '').country)

    def test_parse_ignores_variant(self):
        self.assertEqual(Locale('sr', 'RS'), Locale.parse('sr_RS_latin'))

    def test_parse_skips_script_subtag(self):
        self.assertEqual(Locale('zh', 'TW'), Locale.parse('zh-Hant-TW'))
        self.assertEqual(Locale('zh'), Locale.parse('zh_Hans'))

    def test_parse_returns_locale_unchanged(self):
        locale = Locale('fr', 'CA')
        self.assertIs(locale, Locale.parse(locale))

    def test_parse_rejects_garbage(self):
        for value in ['', '   ', None, 42, '_GB']:
            with self.assertRaises(ValidationError):
                Locale.parse(value)

    def test_base_language_truncates_long_codes(self):
        self.assertEqual('en', Locale.parse('eng').base_language)
        self.assertEqual('eng', Locale.parse('eng').language)


class LocaleCompatibilityTest(SimpleTestCase):

    def test_equal_locales_are_compatible(self):
        self.assertTrue(are_compatible('en_GB', 'en_GB'))
        self.assertTrue(are_compatible('en', 'en'))

    def test_language_only_is_compatible_with_any_country_of_language(self):
        self.assertTrue(are_compatible('en', 'en_GB'))
        self.assertTrue(are_compatible('en_GB', 'en'))

    def test_different_countries_are_not_compatible(self):
        self.assertFalse(are_compatible('en_GB', 'en_US'))

    def test_different_languages_are_not_compatible(self):
        self.assertFalse(are_compatible('en', 'fr'))
        self.assertFalse(are_compatible('en', 'fr_CA'))

    def test_long_language_codes_are_truncated_for_comparison(self):
        self.assertTrue(are_compatible('eng', 'en_GB'))
        self.assertTrue(are_compatible('en', 'eng'))
        self.assertTrue(are_compatible('eng_GB', 'en_GB'))
        self.assertFalse(are_compatible('eng_GB', 'en_US'))

    def test_none_is_never_compatible(self):
        self.assertFalse(are_compatible(None, 'en'))
        self.assertFalse(are_compatible('en', None))

    def test_compatibility_is_not_transitive(self):
        self.assertTrue(are_compatible('en_GB', 'en'))
        self.assertTrue(are_compatible('en', 'en_US'))
        self.assertFalse(are_compatible('en_GB', 'en_US'))


class AmbientLocaleTest(SimpleTestCase):

    def test_current_locale_follows_active_translation(self):
        with translation.override('fr'):
            self.assertEqual(Locale('fr'), get_current_locale())
        with translation.override('en-gb'):
            self.assertEqual(Locale('en', 'GB'), get_current_locale())

    @override_settings(DEFAULT_LOCALE='es')
    def test_current_locale_falls_back_to_default_locale(self):
        with translation.override(None):
            self.assertEqual(Locale('es'), get_current_locale())

    @override_settings(DEFAULT_LOCALE='pt_BR')
    def test_default_locale(self):
        self.assertEqual(Locale('pt', 'BR'), get_default_locale())

    def test_resolve_locale(self):
        with translation.override('de'):
            self.assertEqual(Locale('de'), resolve_locale(None))
            self.assertEqual(Locale('en', 'KE'), resolve_locale('en-ke'))


class SettingsModuleTest(SimpleTestCase):

    def load_settings_module(self, name, path):
        module_spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(module_spec)
        module_spec.loader.exec_module(module)
        return module

    def test_local_settings_load_without_secret_key(self):
        with mock.patch.dict(os.environ):
            os.environ.pop('SECRET_KEY', None)
            module = self.load_settings_module('dictapi_local_settings', local.__file__)
        self.assertTrue(hasattr(module, 'Test'))
        self.assertFalse(hasattr(module, 'Production'))

    def test_production_settings_require_secret_key(self):
        path = os.path.join(os.path.dirname(local.__file__), 'production.py')
        with mock.patch.dict(os.environ):
            os.environ.pop('SECRET_KEY', None)
            with self.assertRaises(ValueError):
                self.load_settings_module('dictapi_production_settings', path)
