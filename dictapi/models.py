import re
import uuid

from django.core.validators import RegexValidator
from django.db import models

CONCEPT_ID_PATTERN = r'[a-zA-Z0-9\-\.\_]+'
CONCEPT_ID_REGEX = re.compile(r'^' + CONCEPT_ID_PATTERN + '$')


class BaseModel(models.Model):
    """
    Base model from which all resources inherit.  Contains timestamps and is_active field for logical deletion.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.TextField(blank=True, default='')
    updated_by = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True)
    extras = models.JSONField(null=True, blank=True)

    class Meta:
        abstract = True

    def soft_delete(self):
        if self.is_active:
            self.is_active = False
            self.save()

    def undelete(self):
        if not self.is_active:
            self.is_active = True
            self.save()


class DictionaryItemModel(BaseModel):
    """
    A dictionary item is identified by a mnemonic and may be retired, but is never hard deleted.
    """
    mnemonic = models.CharField(max_length=255, validators=[RegexValidator(regex=CONCEPT_ID_REGEX)])
    external_id = models.TextField(null=True, blank=True)
    retired = models.BooleanField(default=False)
    retired_by = models.TextField(null=True, blank=True)
    retire_reason = models.TextField(null=True, blank=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.mnemonic


class VoidableModel(models.Model):
    """
    Embedded records (names, descriptions) are addressed by uuid, which is assigned on construction so that unsaved
    instances can be compared and hashed by identity. Voided records stay around for audit but are otherwise ignored.
    """
    uuid = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    voided = models.BooleanField(default=False)
    voided_by = models.TextField(null=True, blank=True)
    date_voided = models.DateTimeField(null=True, blank=True)
    void_reason = models.TextField(null=True, blank=True)

    class Meta:
        abstract = True
