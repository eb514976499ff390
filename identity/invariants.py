from .exceptions import InvariantViolation


def check_cluster(primary_id, contacts):
    """
    Raise InvariantViolation unless contacts form one depth-one tree rooted at primary_id.

    The root must be the only primary, every other member must link straight
    to it, and no member may be older than the root.
    """
    primaries = [c for c in contacts if c.is_primary]
    if [c.id for c in primaries] != [primary_id]:
        raise InvariantViolation(
            f"Cluster {primary_id} has primaries {sorted(c.id for c in primaries)}"
        )

    root = primaries[0]
    for contact in contacts:
        if contact.is_primary:
            continue
        if contact.linked_id_id != primary_id:
            raise InvariantViolation(
                f"Contact {contact.id} links to {contact.linked_id_id}, not primary {primary_id}"
            )
        if (contact.created_at, contact.id) < (root.created_at, root.id):
            raise InvariantViolation(
                f"Contact {contact.id} is older than its primary {primary_id}"
            )


def find_graph_problems(contacts):
    """Describe every invariant violation across a set of live contacts."""
    by_id = {c.id: c for c in contacts}
    problems = []

    for contact in contacts:
        if contact.is_primary:
            if contact.linked_id_id is not None:
                problems.append(f"Primary {contact.id} links to {contact.linked_id_id}")
            continue

        parent = by_id.get(contact.linked_id_id)
        if parent is None:
            problems.append(
                f"Secondary {contact.id} links to missing or tombstoned contact {contact.linked_id_id}"
            )
        elif not parent.is_primary:
            problems.append(
                f"Secondary {contact.id} links to secondary {parent.id} (multi-hop chain)"
            )

    # Walk shared identifiers to find components that ended up with several roots.
    owner = {}
    component = {c.id: c.id for c in contacts}

    def find(contact_id):
        while component[contact_id] != contact_id:
            component[contact_id] = component[component[contact_id]]
            contact_id = component[contact_id]
        return contact_id

    def union(a, b):
        component[find(a)] = find(b)

    for contact in contacts:
        if not contact.is_primary and contact.linked_id_id in by_id:
            union(contact.id, contact.linked_id_id)
        for key in (f"email:{contact.email}" if contact.email else None,
                    f"phone:{contact.phone_number}" if contact.phone_number else None):
            if key is None:
                continue
            if key in owner:
                union(contact.id, owner[key])
            else:
                owner[key] = contact.id

    roots_by_component = {}
    for contact in contacts:
        if contact.is_primary:
            roots_by_component.setdefault(find(contact.id), []).append(contact)

    for members in roots_by_component.values():
        if len(members) > 1:
            problems.append(
                f"Primaries {sorted(c.id for c in members)} share identifiers but were never merged"
            )
            continue
        root = members[0]
        for contact in contacts:
            if find(contact.id) != find(root.id) or contact.id == root.id:
                continue
            if (contact.created_at, contact.id) < (root.created_at, root.id):
                problems.append(f"Contact {contact.id} is older than its primary {root.id}")

    return problems
