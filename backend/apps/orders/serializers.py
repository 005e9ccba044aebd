from rest_framework import serializers

from .constants import DeliveryMethod, PaymentMethod


class CheckoutRequestSerializer(serializers.Serializer):
    # Field rules live in the checkout validator so errors come back per field.
    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    phone = serializers.CharField(allow_blank=True)
    deliveryMethod = serializers.ChoiceField(
        choices=DeliveryMethod.choices, default=DeliveryMethod.DELIVERY
    )
    paymentMethod = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.KASPI
    )
    address = serializers.CharField(required=False, allow_blank=True, default="")
    deliveryTime = serializers.CharField(required=False, allow_blank=True, default="")
    comment = serializers.CharField(required=False, allow_blank=True, default="", max_length=1000)
    messagingAvailable = serializers.BooleanField(required=False, default=True)


class TotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    deliveryCost = serializers.DecimalField(source="delivery_cost", max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class HandoffSerializer(serializers.Serializer):
    channel = serializers.CharField()
    url = serializers.CharField(allow_blank=True)
    phone = serializers.CharField(allow_blank=True)
    usedFallback = serializers.BooleanField(source="used_fallback")


class PlacedOrderSerializer(serializers.Serializer):
    orderId = serializers.UUIDField(source="order_id")
    shortId = serializers.CharField(source="short_id")
    totals = TotalsSerializer()
    summary = serializers.CharField()
    handoff = HandoffSerializer(allow_null=True)


class OrderLineSerializer(serializers.Serializer):
    kind = serializers.CharField(source="ref.kind")
    refId = serializers.IntegerField(source="ref.id")
    productId = serializers.IntegerField(source="product_id", allow_null=True)
    name = serializers.CharField()
    image = serializers.CharField(allow_blank=True)
    size = serializers.CharField(allow_null=True)
    quantity = serializers.IntegerField()
    priceAtPurchase = serializers.DecimalField(
        source="price_at_purchase", max_digits=10, decimal_places=2
    )
    lineTotal = serializers.DecimalField(source="line_total", max_digits=12, decimal_places=2)


class OrderSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    status = serializers.CharField()
    customerName = serializers.CharField(source="customer_name")
    customerPhone = serializers.CharField(source="customer_phone")
    customerAddress = serializers.CharField(source="customer_address", allow_null=True)
    deliveryMethod = serializers.CharField(source="delivery_method")
    paymentMethod = serializers.CharField(source="payment_method")
    comment = serializers.CharField(allow_blank=True)
    deliveryTime = serializers.CharField(source="delivery_time", allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    deliveryCost = serializers.DecimalField(source="delivery_cost", max_digits=10, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    createdAt = serializers.DateTimeField(source="created_at")
    isTerminal = serializers.BooleanField(source="is_terminal")


class OrderDetailSerializer(OrderSerializer):
    lines = OrderLineSerializer(many=True)
