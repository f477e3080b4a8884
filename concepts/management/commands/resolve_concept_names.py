""" Prints the names a set of concepts resolve to, one line per concept and locale """
import json
import logging
import os

from django.core.management import BaseCommand, CommandError
from rest_framework import serializers

from concepts.serializers import ConceptDetailSerializer

logger = logging.getLogger('batch')


class Command(BaseCommand):
    help = 'Resolve display names of concepts read from a JSON lines file'

    def add_arguments(self, parser):
        parser.add_argument('concepts_file', help='File with one JSON concept per line')
        parser.add_argument('--locale', action='append', dest='locales', default=None,
                            help='Locale to resolve names for; may be repeated (default: current locale)')
        parser.add_argument('--short', action='store_true', default=False,
                            help='Also print the best short name')
        parser.add_argument('--description', action='store_true', default=False,
                            help='Also print the description')

    def info(self, message):
        self.stdout.write(message)
        logger.info(message)

    def error(self, error):
        self.stderr.write(error)
        logger.warning(error)

    def handle(self, *args, **options):
        concepts_file = options['concepts_file']
        if not os.path.exists(concepts_file):
            raise CommandError('Could not find concepts file: %s' % concepts_file)

        locales = options['locales'] or [None]
        lines_handled = 0
        errors = 0
        with open(concepts_file, 'r', encoding='utf-8') as input_file:
            for line_number, line in enumerate(input_file, start=1):
                line = line.strip()
                if not line:
                    continue
                lines_handled += 1
                concept = self.build_concept(line, line_number)
                if concept is None:
                    errors += 1
                    continue
                for locale in locales:
                    self.info(self.describe(concept, locale, options['short'], options['description']))

        self.info('Handled %d concepts, %d with errors' % (lines_handled, errors))

    def build_concept(self, line, line_number):
        try:
            data = json.loads(line)
        except ValueError as exc:
            self.error('Failed to parse line %d: %s. Skipping it...' % (line_number, exc))
            return None

        serializer = ConceptDetailSerializer(data=data)
        if not serializer.is_valid():
            self.error('Validation failed on line %d: %s. Skipping it...' % (line_number, json.dumps(serializer.errors)))
            return None
        try:
            return serializer.save()
        except serializers.ValidationError as exc:
            self.error('Validation failed on line %d: %s. Skipping it...' % (line_number, json.dumps(exc.detail)))
            return None

    def describe(self, concept, locale, include_short, include_description):
        name = concept.get_best_name(locale)
        resolved_locale = locale or 'current'
        columns = [concept.mnemonic, resolved_locale, name.name if name else '']
        if include_short:
            short_name = concept.get_best_short_name(locale)
            columns.append(short_name.name if short_name else '')
        if include_description:
            description = concept.get_description(locale)
            columns.append(description.description if description else '')
        return '\t'.join(columns)
