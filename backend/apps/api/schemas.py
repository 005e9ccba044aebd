from rest_framework import serializers


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField(help_text="Stable machine readable code, e.g. EMPTY_CART.")
    message = serializers.CharField(help_text="User-safe message; backend text is never included.")
    status = serializers.IntegerField()
    details = serializers.JSONField(
        required=False, help_text="Per-field messages for validation errors."
    )
    hint = serializers.CharField(required=False, allow_blank=True)


class ErrorResponseSerializer(serializers.Serializer):
    error = ErrorDetailSerializer()
