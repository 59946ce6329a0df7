# apps/core/models.py
"""
Core models shared by the business apps.

Models:
- DocumentSequence: Auto-generate sequential document numbers (SR-0001, ...)
"""
from django.db import models, transaction


class DocumentSequence(models.Model):
    """
    Sequential counter for human-readable document numbers.

    One row per document type. The row is locked while a number is taken,
    so two concurrent callers never receive the same number.

    Usage:
        number = get_next_sequence_number('SR')  # Returns 'SR-0001'
    """
    SEQUENCE_TYPES = [
        ('SR', 'Stock Release'),
    ]

    sequence_type = models.CharField(
        max_length=20,
        unique=True,
        choices=SEQUENCE_TYPES,
        help_text="Type of sequence (SR)"
    )
    prefix = models.CharField(
        max_length=10,
        help_text="Prefix for the number (e.g., 'SR-')"
    )
    next_value = models.PositiveIntegerField(
        default=1,
        help_text="Next number to use"
    )
    padding = models.PositiveIntegerField(
        default=4,
        help_text="Zero-pad to this width (e.g., 4 = '0001')"
    )

    def __str__(self):
        return f"{self.sequence_type} (next: {self.format(self.next_value)})"

    def format(self, value):
        return f"{self.prefix}{str(value).zfill(self.padding)}"


def get_next_sequence_number(sequence_type, prefix=None, padding=4):
    """
    Get the next sequential number for a document type.

    The sequence row is created on first use with the given prefix and
    padding (prefix defaults to '<sequence_type>-').

    Args:
        sequence_type: Document type, e.g. 'SR'
        prefix: Prefix used when the sequence does not exist yet
        padding: Zero-pad width used when the sequence does not exist yet

    Returns:
        str: Formatted sequence number (e.g., 'SR-0001')
    """
    with transaction.atomic():
        seq, _ = DocumentSequence.objects.select_for_update().get_or_create(
            sequence_type=sequence_type,
            defaults={
                'prefix': prefix if prefix is not None else f"{sequence_type}-",
                'padding': padding,
            },
        )
        number = seq.format(seq.next_value)
        seq.next_value += 1
        seq.save(update_fields=['next_value'])
        return number
