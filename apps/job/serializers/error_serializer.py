from rest_framework import serializers


class CostingErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    details = serializers.DictField(required=False)
    retryable = serializers.BooleanField(required=False)
    reconcile = serializers.CharField(required=False)
