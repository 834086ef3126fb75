# accounting/models/sequence.py

"""
DOCUMENT NUMBER SEQUENCES

One row per numbering series ("invoice:S", "voucher:RV-", ...).
last_value only ever grows, so a number is never issued twice even after
the document that carried it is deleted (journal references such as
RV-0003 / REV-RV-0003 stay unambiguous).
"""

from django.db import models


class NumberSequence(models.Model):
    key = models.CharField(max_length=40, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Number Sequence"
        verbose_name_plural = "Number Sequences"

    def __str__(self):
        return f"{self.key} @ {self.last_value}"
