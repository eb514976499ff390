"""
Tests for the cluster view projection. Contacts are built in memory.
"""
from datetime import datetime, timedelta, timezone

import pytest

from identity.cluster_view import ClusterView, build_cluster_view
from identity.exceptions import InvariantViolation
from identity.models import Contact
from identity.serializers import ClusterViewSerializer

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def contact(id, email=None, phone=None, linked=None, minutes=0):
    return Contact(
        id=id,
        email=email,
        phone_number=phone,
        linked_id_id=linked,
        link_precedence=(
            Contact.ContactType.SECONDARY if linked else Contact.ContactType.PRIMARY
        ),
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_single_primary():
    primary = contact(1, email="a@x.com")

    view = build_cluster_view(1, [primary], [])

    assert view == ClusterView(
        primary_contact_id=1,
        emails=["a@x.com"],
        phone_numbers=[],
        secondary_contact_ids=[],
    )


def test_primary_values_come_first():
    primary = contact(5, email="p@x.com", phone="555", minutes=0)
    older_looking = contact(2, email="s@x.com", phone="111", linked=5, minutes=1)

    view = build_cluster_view(5, [older_looking, primary], [older_looking])

    assert view.emails == ["p@x.com", "s@x.com"]
    assert view.phone_numbers == ["555", "111"]


def test_secondary_values_follow_creation_order_not_input_order():
    primary = contact(1, email="a@x.com")
    late = contact(3, email="late@x.com", linked=1, minutes=10)
    early = contact(4, email="early@x.com", linked=1, minutes=5)
    members = [primary, late, early]

    view = build_cluster_view(1, members, [late, early])

    assert view.emails == ["a@x.com", "early@x.com", "late@x.com"]


def test_equal_timestamps_fall_back_to_id():
    primary = contact(1, phone="100")
    b = contact(7, phone="700", linked=1, minutes=1)
    a = contact(6, phone="600", linked=1, minutes=1)

    view = build_cluster_view(1, [primary, b, a], [b, a])

    assert view.phone_numbers == ["100", "600", "700"]


def test_values_are_deduplicated_and_missing_values_skipped():
    primary = contact(1, email="a@x.com")
    s1 = contact(2, email="a@x.com", phone="123", linked=1, minutes=1)
    s2 = contact(3, phone="123", linked=1, minutes=2)
    s3 = contact(4, email="b@x.com", phone="123", linked=1, minutes=3)

    view = build_cluster_view(1, [primary, s1, s2, s3], [s3, s1, s2])

    assert view.emails == ["a@x.com", "b@x.com"]
    assert view.phone_numbers == ["123"]
    assert view.secondary_contact_ids == [2, 3, 4]


def test_secondary_ids_sort_numerically():
    primary = contact(1, email="a@x.com")
    secondaries = [contact(i, email=f"{i}@x.com", linked=1, minutes=i) for i in (10, 9, 100)]

    view = build_cluster_view(1, [primary, *secondaries], secondaries)

    assert view.secondary_contact_ids == [9, 10, 100]


def test_missing_primary_is_a_programming_error():
    stray = contact(2, email="s@x.com", linked=1)

    with pytest.raises(InvariantViolation):
        build_cluster_view(1, [stray], [stray])


def test_serializer_uses_wire_field_names():
    view = ClusterView(
        primary_contact_id=1,
        emails=["a@x.com"],
        phone_numbers=["123"],
        secondary_contact_ids=[2],
    )

    assert ClusterViewSerializer(view).data == {
        "primaryContatctId": 1,
        "emails": ["a@x.com"],
        "phoneNumbers": ["123"],
        "secondaryContactIds": [2],
    }
