"""
Concurrent identify calls from real threads, each on its own connection.

PostgreSQL serializes them with row locks. SQLite has no row locks and relies
on BEGIN IMMEDIATE plus the busy timeout, so its test database must be a file
that every thread opens (see DATABASES["default"]["TEST"]).
"""
import threading

import pytest
from django.db import connection

from identity.models import Contact
from identity.reconciler import Reconciler

pytestmark = pytest.mark.django_db(transaction=True)


def run_concurrently(calls):
    barrier = threading.Barrier(len(calls))
    errors = []

    def worker(kwargs):
        try:
            barrier.wait()
            Reconciler(retry_backoff=0.01, max_attempts=5).identify(**kwargs)
        except Exception as e:  # collected and asserted on below
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(kwargs,)) for kwargs in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


def test_sqlite_test_database_is_shared_between_threads():
    if connection.vendor != "sqlite":
        pytest.skip("only SQLite can fall back to a private in-memory database")

    assert not connection.is_in_memory_db()
    assert connection.settings_dict["OPTIONS"]["transaction_mode"] == "IMMEDIATE"


def test_same_new_email_creates_one_primary():
    errors = run_concurrently([{"email": "race@x.com"}] * 8)

    assert errors == []
    assert Contact.live.filter(email="race@x.com").count() == 1
    assert Contact.live.filter(link_precedence=Contact.ContactType.PRIMARY).count() == 1


def test_same_new_phone_from_string_and_number_creates_one_primary():
    errors = run_concurrently([{"phone_number": "555"}, {"phone_number": 555}] * 3)

    assert errors == []
    assert Contact.live.filter(phone_number="555").count() == 1


def test_overlapping_fragments_end_in_one_cluster():
    Reconciler().identify(email="a@x.com")
    Reconciler().identify(phone_number="1")

    errors = run_concurrently(
        [
            {"email": "a@x.com", "phone_number": "1"},
            {"email": "b@x.com", "phone_number": "1"},
            {"email": "a@x.com", "phone_number": "2"},
        ]
    )

    assert errors == []
    assert Contact.live.filter(link_precedence=Contact.ContactType.PRIMARY).count() == 1
