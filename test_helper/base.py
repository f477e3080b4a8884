import random
import string

from django.test import SimpleTestCase
from django.utils import translation

from concepts.models import Concept, ConceptName, ConceptDescription


class DictApiBaseTestCase(SimpleTestCase):
    """
    Concepts live in memory, so tests never need the database. The ambient locale is pinned to en-us.
    """
    ambient_language = 'en-us'

    def setUp(self):
        super(DictApiBaseTestCase, self).setUp()
        translation.activate(self.ambient_language)
        self.addCleanup(translation.deactivate)


def generate_random_string(length=5):
    return ''.join(random.SystemRandom().choice(string.ascii_uppercase + string.digits) for _ in range(length))


def create_concept_name(name, locale='en', type='FULLY_SPECIFIED', tags=None, voided=False):
    return ConceptName(name=name, locale=locale, type=type, tags=list(tags or []), voided=voided)


def create_description(description, locale='en', type='Definition'):
    return ConceptDescription(description=description, locale=locale, type=type)


def create_concept(mnemonic=None, names=None, descriptions=None, concept_class='Diagnosis', **kwargs):
    mnemonic = mnemonic if mnemonic else 'concept{0}'.format(generate_random_string())
    return Concept(
        mnemonic=mnemonic,
        concept_class=concept_class,
        names=names,
        descriptions=descriptions,
        **kwargs
    )
