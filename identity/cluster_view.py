"""Projection of a consolidated cluster into the response shape."""
from dataclasses import dataclass, field

from .exceptions import InvariantViolation


@dataclass(frozen=True)
class ClusterView:
    primary_contact_id: int
    emails: list = field(default_factory=list)
    phone_numbers: list = field(default_factory=list)
    secondary_contact_ids: list = field(default_factory=list)


def _ordered_values(primary, secondaries, attr):
    """Primary's value first, then each new secondary value in (created_at, id) order."""
    values = []
    if getattr(primary, attr):
        values.append(getattr(primary, attr))
    for contact in sorted(secondaries, key=lambda c: (c.created_at, c.id)):
        value = getattr(contact, attr)
        if value and value not in values:
            values.append(value)
    return values


def build_cluster_view(primary_id, contacts, secondaries):
    primary = next((c for c in contacts if c.id == primary_id), None)
    if primary is None:
        raise InvariantViolation(f"Primary {primary_id} is not a member of its cluster")

    return ClusterView(
        primary_contact_id=primary_id,
        emails=_ordered_values(primary, secondaries, "email"),
        phone_numbers=_ordered_values(primary, secondaries, "phone_number"),
        secondary_contact_ids=sorted(c.id for c in secondaries),
    )
