"""
Persistence primitives over the contact graph.

The reconciler never touches the ORM directly; everything it reads, writes or
locks goes through ContactStore so database failures surface as StoreError.
Lock methods only have an effect inside an enclosing transaction.atomic().
"""
import logging
from contextlib import contextmanager

from django.db import DatabaseError, OperationalError
from django.db.models import Q
from django.utils import timezone

from .exceptions import (
    ConcurrentMergeConflict,
    InvariantViolation,
    StoreError,
    TransientStoreError,
)
from .models import Contact, IdentifierLock

logger = logging.getLogger(__name__)


@contextmanager
def translate_database_errors(operation):
    try:
        yield
    except OperationalError as e:
        raise TransientStoreError(f"{operation} failed: {e}") from e
    except DatabaseError as e:
        raise StoreError(f"{operation} failed: {e}") from e


class ContactStore:

    def find_by_identifiers(self, email=None, phone_number=None):
        """Live contacts whose email or phone number equals the given one."""
        if not email and not phone_number:
            raise ValueError("find_by_identifiers needs an email or a phone number")

        criteria = Q()
        if email:
            criteria |= Q(email=email)
        if phone_number:
            criteria |= Q(phone_number=phone_number)

        with translate_database_errors("find_by_identifiers"):
            return list(Contact.live.filter(criteria))

    def find_by_roots(self, root_ids):
        """Live contacts that are one of the roots or link to one of them."""
        root_ids = list(root_ids)
        with translate_database_errors("find_by_roots"):
            return list(
                Contact.live.filter(Q(id__in=root_ids) | Q(linked_id__in=root_ids))
                .distinct()
                .order_by("created_at", "id")
            )

    def find_dependent_ids(self, root_ids):
        """Ids of every contact linked to one of the roots, tombstoned ones included."""
        with translate_database_errors("find_dependent_ids"):
            return list(
                Contact.objects.filter(linked_id__in=list(root_ids))
                .order_by("id")
                .values_list("id", flat=True)
            )

    def create(
        self,
        email=None,
        phone_number=None,
        linked_id=None,
        precedence=Contact.ContactType.PRIMARY,
    ):
        if not email and not phone_number:
            raise StoreError("A contact needs an email or a phone number.")

        with translate_database_errors("create"):
            return Contact.objects.create(
                email=email,
                phone_number=phone_number,
                linked_id_id=linked_id,
                link_precedence=precedence,
            )

    def batch_update(self, ids, precedence=None, linked_id=None):
        """Set precedence and/or linked_id on every row in ids, refreshing updated_at."""
        ids = list(ids)
        if not ids:
            return 0

        # QuerySet.update() bypasses auto_now, so updated_at is set explicitly.
        fields = {"updated_at": timezone.now()}
        if precedence is not None:
            fields["link_precedence"] = precedence
        if linked_id is not None:
            fields["linked_id_id"] = linked_id

        with translate_database_errors("batch_update"):
            return Contact.objects.filter(id__in=ids).update(**fields)

    def lock_identifiers(self, email=None, phone_number=None):
        """
        Take the identifier locks for a fragment.

        Keys are created on first sight and always locked in sorted order, so
        two requests sharing any identifier cannot deadlock each other.
        """
        keys = IdentifierLock.keys_for(email, phone_number)
        with translate_database_errors("lock_identifiers"):
            for key in keys:
                IdentifierLock.objects.get_or_create(key=key)
            list(
                IdentifierLock.objects.select_for_update()
                .filter(key__in=keys)
                .order_by("key")
            )
        return keys

    def lock_roots(self, root_ids):
        """
        Lock the primary rows of every cluster about to be read or merged.

        Raises ConcurrentMergeConflict if a root was demoted after it was
        matched, and InvariantViolation if a root is missing or tombstoned.
        """
        root_ids = sorted(set(root_ids))
        with translate_database_errors("lock_roots"):
            roots = list(
                Contact.objects.select_for_update().filter(id__in=root_ids).order_by("id")
            )

        found = {contact.id: contact for contact in roots}
        gone = [
            root_id
            for root_id in root_ids
            if root_id not in found or found[root_id].deleted_at is not None
        ]
        if gone:
            raise InvariantViolation(
                f"Live contacts link to missing or tombstoned primaries {gone}"
            )

        demoted = [contact.id for contact in roots if not contact.is_primary]
        if demoted:
            logger.warning(f"Cluster roots {demoted} were demoted while waiting for locks")
            raise ConcurrentMergeConflict(f"Roots {demoted} are no longer primaries")
        return roots

    def all_live_contacts(self):
        with translate_database_errors("all_live_contacts"):
            return list(Contact.live.order_by("id"))
