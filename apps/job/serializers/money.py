from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from apps.job.services.money import from_minor_units


@extend_schema_field(OpenApiTypes.DECIMAL)
class MoneyField(serializers.Field):
    """Integer cents in the model, two-decimal string on the wire. Read-only."""

    def __init__(self, **kwargs):
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return str(from_minor_units(value or 0))


class RejectUnknownFieldsMixin:
    """Fail validation when the payload carries fields the serializer does not declare."""

    def to_internal_value(self, data):
        unknown = set(data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {field: "Unknown field." for field in sorted(unknown)}
            )
        return super().to_internal_value(data)
