from rest_framework import serializers


class CartMergeSerializer(serializers.Serializer):
    merged = serializers.IntegerField()
    ok = serializers.BooleanField()
    failed = serializers.ListField(child=serializers.CharField())
    savedFailed = serializers.ListField(child=serializers.IntegerField())


class LoginResponseSerializer(serializers.Serializer):
    access = serializers.CharField()
    refresh = serializers.CharField()
    cart = CartMergeSerializer()


class LogoutRequestSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class DetailResponseSerializer(serializers.Serializer):
    detail = serializers.CharField()
