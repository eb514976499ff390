from rest_framework import serializers


class ClusterViewSerializer(serializers.Serializer):
    """Wire shape of a consolidated cluster. Field names are part of the public contract."""

    primaryContatctId = serializers.IntegerField(source="primary_contact_id")
    emails = serializers.ListField(child=serializers.CharField())
    phoneNumbers = serializers.ListField(
        child=serializers.CharField(), source="phone_numbers"
    )
    secondaryContactIds = serializers.ListField(
        child=serializers.IntegerField(), source="secondary_contact_ids"
    )
