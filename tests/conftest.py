"""
Shared fixtures for the identity reconciliation tests.

Database tests use pytest-django's django_db marker; each test runs inside a
transaction that is rolled back afterwards, so absolute contact ids are never
asserted, only relations between them.
"""
import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from identity.models import Contact
from identity.reconciler import Reconciler


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def reconciler():
    return Reconciler(retry_backoff=0)


@pytest.fixture
def make_contact():
    """
    Insert a contact directly, bypassing reconciliation.

    `age` pushes created_at into the past so tests can control which primary
    is the oldest.
    """

    def _make(email=None, phone_number=None, linked_to=None, age=None, deleted=False):
        contact = Contact.objects.create(
            email=email,
            phone_number=phone_number,
            linked_id=linked_to,
            link_precedence=(
                Contact.ContactType.SECONDARY if linked_to else Contact.ContactType.PRIMARY
            ),
        )
        fields = {}
        if age is not None:
            fields["created_at"] = timezone.now() - age
        if deleted:
            fields["deleted_at"] = timezone.now()
        if fields:
            Contact.objects.filter(id=contact.id).update(**fields)
            contact.refresh_from_db()
        return contact

    return _make

