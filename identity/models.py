from django.db import models
from django.db.models import Q


class LiveContactManager(models.Manager):
    """Contacts that have not been tombstoned."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Contact(models.Model):
    class ContactType(models.TextChoices):
        PRIMARY = "primary", "Primary"
        SECONDARY = "secondary", "Secondary"

    id = models.AutoField(primary_key=True)
    phone_number = models.CharField(max_length=32, null=True, blank=True, db_index=True)
    # Matched as an exact string, so no EmailField syntax validation.
    email = models.CharField(max_length=254, null=True, blank=True, db_index=True)

    # This links a 'secondary' record back to its 'primary' record
    linked_id = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="secondary_contacts",
    )

    link_precedence = models.CharField(max_length=10, choices=ContactType.choices)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = models.Manager()
    live = LiveContactManager()

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(email__isnull=False) | Q(phone_number__isnull=False),
                name="contact_has_identifier",
            ),
            models.CheckConstraint(
                condition=(
                    Q(link_precedence="primary", linked_id__isnull=True)
                    | Q(link_precedence="secondary", linked_id__isnull=False)
                ),
                name="contact_precedence_matches_link",
            ),
        ]

    def __str__(self):
        return f"ID: {self.id} - {self.email or self.phone_number}"

    @property
    def is_primary(self):
        return self.link_precedence == Contact.ContactType.PRIMARY

    @property
    def root_id(self):
        """Id of the primary this contact belongs to (its own id if primary)."""
        return self.id if self.is_primary else self.linked_id_id


class IdentifierLock(models.Model):
    """
    One row per identifier ever seen ("email:<value>" or "phone:<value>").

    Rows are locked FOR UPDATE for the lifetime of a reconciliation
    transaction so requests sharing an identifier run one at a time.

    Rows are never removed, so the table grows with the number of distinct
    identifiers seen, at most two rows per contact.
    """

    key = models.CharField(max_length=300, primary_key=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.key

    @staticmethod
    def keys_for(email=None, phone_number=None):
        keys = []
        if email:
            keys.append(f"email:{email}")
        if phone_number:
            keys.append(f"phone:{phone_number}")
        return sorted(keys)
