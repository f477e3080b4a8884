from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import RegexValidator
from rest_framework import serializers

from concepts import tags
from concepts.models import Concept, ConceptName, ConceptDescription, CONCEPT_KIND_CHOICES, CONCEPT_KIND_CODED
from dictapi.locales import Locale
from dictapi.models import CONCEPT_ID_REGEX


class LocaleField(serializers.CharField):
    """
    Accepts 'en', 'en-gb', 'en_GB'... and normalizes to 'en_GB'.
    """

    def to_internal_value(self, data):
        value = super(LocaleField, self).to_internal_value(data)
        try:
            return Locale.parse(value).code
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)


class ConceptNameSerializer(serializers.Serializer):
    uuid = serializers.UUIDField(read_only=True)
    external_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    name = serializers.CharField()
    locale = LocaleField()
    locale_preferred = serializers.BooleanField(required=False, default=False)
    name_type = serializers.CharField(source='type', required=False, allow_null=True, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    voided = serializers.BooleanField(required=False, default=False)

    def validate_tags(self, value):
        normalized = []
        for tag in value:
            tag = tags.normalize_tag(tag)
            if not tags.is_valid_tag(tag):
                raise serializers.ValidationError('Unknown concept name tag: %s' % tag)
            if tag not in normalized:
                normalized.append(tag)
        return normalized

    def create(self, validated_data):
        validated_data = dict(validated_data)
        validated_data.pop('locale_preferred', None)
        return ConceptName(**validated_data)


class ConceptDescriptionSerializer(serializers.Serializer):
    uuid = serializers.UUIDField(read_only=True)
    external_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    description = serializers.CharField()
    locale = LocaleField()
    description_type = serializers.CharField(source='type', required=False, allow_null=True, allow_blank=True)

    def create(self, validated_data):
        return ConceptDescription(**validated_data)


class ConceptListSerializer(serializers.Serializer):
    id = serializers.CharField(source='mnemonic')
    external_id = serializers.CharField()
    concept_class = serializers.CharField()
    datatype = serializers.CharField()
    kind = serializers.CharField()
    retired = serializers.BooleanField()
    display_name = serializers.CharField()
    display_locale = serializers.CharField()


class ConceptDetailSerializer(serializers.Serializer):
    id = serializers.CharField(required=True, validators=[RegexValidator(regex=CONCEPT_ID_REGEX)], source='mnemonic')
    external_id = serializers.CharField(required=False, allow_null=True)
    concept_class = serializers.CharField(required=True)
    datatype = serializers.CharField(required=False, allow_null=True)
    kind = serializers.ChoiceField(choices=CONCEPT_KIND_CHOICES, required=False, default=CONCEPT_KIND_CODED)
    numeric_details = serializers.DictField(required=False, allow_null=True)
    display_name = serializers.CharField(read_only=True)
    display_locale = serializers.CharField(read_only=True)
    names = ConceptNameSerializer(many=True, required=True)
    descriptions = ConceptDescriptionSerializer(many=True, required=False, default=list)
    retired = serializers.BooleanField(required=False, default=False)
    extras = serializers.DictField(required=False, allow_null=True)

    def validate_names(self, value):
        if not value:
            raise serializers.ValidationError('A concept must have at least one name')
        return value

    def create(self, validated_data):
        validated_data = dict(validated_data)
        names_data = validated_data.pop('names')
        descriptions_data = validated_data.pop('descriptions', [])
        concept = Concept(**validated_data)

        # designations are applied in payload order, so a later preferred name wins its language
        for name_data in names_data:
            name_data = dict(name_data)
            locale_preferred = name_data.pop('locale_preferred', False)
            name = ConceptName(**name_data)
            if locale_preferred:
                concept.set_preferred_name(name.locale, name)
            elif name.is_short:
                concept.set_short_name(name.locale, name)
            else:
                concept.add_name(name)

        for description_data in descriptions_data:
            concept.add_description(ConceptDescription(**description_data))

        try:
            concept.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return concept
