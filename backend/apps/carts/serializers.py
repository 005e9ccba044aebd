from rest_framework import serializers


class CartLineSerializer(serializers.Serializer):
    id = serializers.CharField()
    kind = serializers.CharField(source="ref.kind")
    refId = serializers.IntegerField(source="ref.id")
    quantity = serializers.IntegerField()
    unitPrice = serializers.DecimalField(source="unit_price", max_digits=12, decimal_places=2)
    lineTotal = serializers.DecimalField(source="line_total", max_digits=12, decimal_places=2)
    name = serializers.CharField(source="meta.name")
    image = serializers.CharField(source="meta.image", allow_blank=True)
    size = serializers.CharField(source="meta.size", allow_null=True)
    productId = serializers.IntegerField(source="meta.product_id", allow_null=True)


class SavedItemSerializer(serializers.Serializer):
    productId = serializers.IntegerField(source="product_id")
    name = serializers.CharField(allow_blank=True)
    image = serializers.CharField(allow_blank=True)


class CartSnapshotSerializer(serializers.Serializer):
    mode = serializers.CharField()
    lines = CartLineSerializer(many=True)
    saved = SavedItemSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    itemCount = serializers.IntegerField(source="item_count")
    isEmpty = serializers.BooleanField(source="is_empty")


class AddItemSerializer(serializers.Serializer):
    variantId = serializers.IntegerField(required=False, min_value=1)
    comboId = serializers.IntegerField(required=False, min_value=1)
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)

    def validate(self, attrs):
        has_variant = attrs.get("variantId") is not None
        has_combo = attrs.get("comboId") is not None
        if has_variant == has_combo:
            raise serializers.ValidationError(
                "Provide exactly one of variantId or comboId"
            )
        return attrs


class SetQuantitySerializer(serializers.Serializer):
    # Zero or below removes the line.
    quantity = serializers.IntegerField()


class ToggleSavedSerializer(serializers.Serializer):
    productId = serializers.IntegerField(min_value=1)


class ToggleSavedResponseSerializer(serializers.Serializer):
    productId = serializers.IntegerField()
    saved = serializers.BooleanField()
    items = SavedItemSerializer(many=True)
