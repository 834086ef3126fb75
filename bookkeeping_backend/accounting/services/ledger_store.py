# accounting/services/ledger_store.py

"""
======================================================
PATH: accounting/services/ledger_store.py
======================================================
LEDGER STORE

Single repository in front of the ORM for everything the ledger engine
reads and writes.

Collections (by name):
- accounts        -> accounting.Account
- journalEntries  -> accounting.JournalEntry
- invoices        -> invoicing.Invoice
- vouchers        -> invoicing.Voucher
- customers       -> invoicing.Customer
- suppliers       -> invoicing.Supplier

Rules:
- get_collection() returns an evaluated snapshot (list), never a lazy queryset
- save_collection() writes documents back (full save or update_fields)
- next_number() allocates monotonic document numbers; invoice and voucher
  series are backed by NumberSequence rows, so deleting the newest
  document never frees its number for reuse
- operation() wraps one public mutation in transaction.atomic and sends
  `ledger_changed` exactly once, after the OUTERMOST operation commits
"""

from __future__ import annotations

import logging
import re
import threading
from contextlib import contextmanager
from functools import partial
from typing import Iterable, Iterator

from django.db import transaction
from django.db.models import Max

from accounting.models import Account, JournalEntry, NumberSequence
from accounting.signals import ledger_changed
from invoicing.models import Customer, Invoice, InvoiceType, Supplier, Voucher, VoucherType

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "accounts": Account,
    "journalEntries": JournalEntry,
    "invoices": Invoice,
    "vouchers": Voucher,
    "customers": Customer,
    "suppliers": Supplier,
}

INVOICE_PREFIXES = {
    InvoiceType.SALES: "S",
    InvoiceType.PURCHASE: "P",
}

VOUCHER_PREFIXES = {
    VoucherType.RECEIPT: "RV-",
    VoucherType.PAYMENT: "PV-",
}

NUMBER_WIDTH = 4


def _max_suffix(values: Iterable[str], prefix: str) -> int:
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    best = 0
    for value in values:
        m = pattern.match(value or "")
        if m:
            best = max(best, int(m.group(1)))
    return best


class LedgerStore:
    def __init__(self):
        self._local = threading.local()

    # ---------------------------------------------------------
    # Collections
    # ---------------------------------------------------------
    def model_for(self, name: str):
        try:
            return COLLECTIONS[name]
        except KeyError as exc:
            raise KeyError(f"Unknown ledger collection: {name!r}") from exc

    def get_collection(self, name: str, *, order_by: Iterable[str] | None = None, **filters) -> list:
        qs = self.model_for(name).objects.filter(**filters)
        if order_by:
            qs = qs.order_by(*order_by)
        return list(qs)

    def get_document(self, name: str, pk, *, for_update: bool = False):
        qs = self.model_for(name).objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs.get(pk=pk)

    def save_collection(
        self,
        name: str,
        documents: Iterable,
        *,
        update_fields: Iterable[str] | None = None,
    ) -> list:
        model = self.model_for(name)
        saved = []
        for doc in documents:
            if not isinstance(doc, model):
                raise TypeError(f"{name} expects {model.__name__} documents, got {type(doc).__name__}")
            if update_fields and doc.pk:
                doc.save(update_fields=list(update_fields))
            else:
                doc.save()
            saved.append(doc)
        return saved

    def delete_document(self, name: str, doc) -> None:
        self.model_for(name).objects.filter(pk=doc.pk).delete()

    # ---------------------------------------------------------
    # Numbering
    # ---------------------------------------------------------
    def next_number(self, kind: str, subtype: str | None = None):
        """
        Allocate the next document number.

        kind:
        - "journal_entry" -> int (max + 1)
        - "invoice"       -> "S0001" / "P0001" (subtype = invoice type)
        - "voucher"       -> "RV-0001" / "PV-0001" (subtype = voucher type)
        """
        if kind == "journal_entry":
            current = JournalEntry.objects.aggregate(m=Max("entry_number"))["m"] or 0
            return current + 1

        if kind == "invoice":
            prefix = INVOICE_PREFIXES[subtype]
            existing = Invoice.objects.filter(invoice_number__startswith=prefix).values_list(
                "invoice_number", flat=True
            )
            value = self._advance(f"invoice:{prefix}", floor=_max_suffix(existing, prefix))
            return f"{prefix}{value:0{NUMBER_WIDTH}d}"

        if kind == "voucher":
            prefix = VOUCHER_PREFIXES[subtype]
            existing = Voucher.objects.filter(voucher_number__startswith=prefix).values_list(
                "voucher_number", flat=True
            )
            value = self._advance(f"voucher:{prefix}", floor=_max_suffix(existing, prefix))
            return f"{prefix}{value:0{NUMBER_WIDTH}d}"

        raise ValueError(f"Unknown numbering kind: {kind!r}")

    def _advance(self, key: str, *, floor: int) -> int:
        # floor covers documents created before the sequence row existed
        with transaction.atomic():
            seq, _ = NumberSequence.objects.select_for_update().get_or_create(key=key)
            seq.last_value = max(seq.last_value, floor) + 1
            seq.save(update_fields=["last_value"])
        return seq.last_value

    # ---------------------------------------------------------
    # Operations + change notification
    # ---------------------------------------------------------
    @property
    def depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @contextmanager
    def operation(self, name: str, **context) -> Iterator[dict]:
        """
        Run one ledger mutation atomically.

        Yields a mutable payload dict; whatever the caller puts in it is
        sent with `ledger_changed` once the outermost operation commits.
        Nested operations join the outer one and do not notify.
        """
        depth = self.depth
        payload = dict(context)
        self._local.depth = depth + 1
        try:
            with transaction.atomic():
                yield payload
                if depth == 0:
                    transaction.on_commit(partial(self._notify, name, payload))
        finally:
            self._local.depth = depth

    def _notify(self, name: str, payload: dict) -> None:
        logger.debug("Ledger changed", extra={"operation": name, **payload})
        ledger_changed.send(sender=self.__class__, operation=name, **payload)


ledger_store = LedgerStore()
