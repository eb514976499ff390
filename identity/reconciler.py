"""
Identity reconciliation.

A request fragment (email and/or phone number) is matched against the contact
graph. Every cluster it touches is merged under the oldest primary, newer
primaries are demoted and their secondaries re-parented, and a new secondary is
recorded when the fragment carries an identifier the cluster has not seen.

Each attempt runs in a single transaction holding locks on the fragment's
identifiers and on every touched cluster root. Transient store failures retry
the whole attempt.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.db import transaction

from .exceptions import TransientStoreError
from .invariants import check_cluster
from .models import Contact
from .normalization import normalize_fragment
from .store import ContactStore, translate_database_errors

logger = logging.getLogger(__name__)


@dataclass
class ConsolidatedCluster:
    primary_id: int
    contacts: list
    created: Optional[Contact] = None
    demoted_ids: list = field(default_factory=list)

    @property
    def secondaries(self):
        return [c for c in self.contacts if not c.is_primary]


class Reconciler:

    def __init__(self, store=None, max_attempts=None, retry_backoff=None):
        config = getattr(settings, "IDENTITY_RECONCILER", {})
        self.store = store or ContactStore()
        self.max_attempts = max_attempts or config.get("MAX_ATTEMPTS", 3)
        self.retry_backoff = (
            retry_backoff if retry_backoff is not None else config.get("RETRY_BACKOFF", 0.05)
        )

    def identify(self, email=None, phone_number=None):
        """
        Consolidate the cluster for a fragment and return it.

        Raises ValidationError before touching the store when the fragment is
        empty or malformed. TransientStoreError propagates once every retry
        has failed.
        """
        email, phone_number = normalize_fragment(email, phone_number)

        attempt = 1
        while True:
            try:
                with translate_database_errors("transaction"), transaction.atomic():
                    return self._reconcile(email, phone_number)
            except TransientStoreError as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Giving up on identify after {attempt} attempts: {e}"
                    )
                    raise
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"Identify attempt {attempt} hit a transient failure ({e}); retrying in {delay:.2f}s"
                )
                time.sleep(delay)
                attempt += 1

    def _reconcile(self, email, phone_number):
        self.store.lock_identifiers(email, phone_number)

        matches = self.store.find_by_identifiers(email, phone_number)
        if not matches:
            contact = self.store.create(email=email, phone_number=phone_number)
            logger.info(f"Created primary contact {contact.id}")
            return ConsolidatedCluster(
                primary_id=contact.id, contacts=[contact], created=contact
            )

        root_ids = {c.root_id for c in matches}
        self.store.lock_roots(root_ids)
        members = self.store.find_by_roots(root_ids)

        primaries = sorted(
            (c for c in members if c.is_primary), key=lambda c: (c.created_at, c.id)
        )
        survivor = primaries[0]
        demoted_ids = [c.id for c in primaries[1:]]

        if demoted_ids:
            self.store.batch_update(
                demoted_ids,
                precedence=Contact.ContactType.SECONDARY,
                linked_id=survivor.id,
            )
            dependent_ids = self.store.find_dependent_ids(demoted_ids)
            self.store.batch_update(dependent_ids, linked_id=survivor.id)
            logger.info(
                f"Merged primaries {demoted_ids} into {survivor.id}, "
                f"re-parented {len(dependent_ids)} contacts"
            )
            members = self.store.find_by_roots({survivor.id})

        known_emails = {c.email for c in members if c.email}
        known_phones = {c.phone_number for c in members if c.phone_number}
        has_new_email = email and email not in known_emails
        has_new_phone = phone_number and phone_number not in known_phones

        created = None
        if has_new_email or has_new_phone:
            created = self.store.create(
                email=email,
                phone_number=phone_number,
                linked_id=survivor.id,
                precedence=Contact.ContactType.SECONDARY,
            )
            logger.info(f"Created secondary contact {created.id} under {survivor.id}")
            members.append(created)

        check_cluster(survivor.id, members)

        return ConsolidatedCluster(
            primary_id=survivor.id,
            contacts=members,
            created=created,
            demoted_ids=demoted_ids,
        )
