from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.carts.models import CartItem, SavedProduct
from apps.catalog.models import Combo, ComboItem, Product, ProductVariant
from apps.users.models import Address, User

# (name, image, [(size, price, stock)])
PRODUCTS = [
    (
        "Red roses",
        "https://cdn.example.com/img/red-roses.jpg",
        [("S", "4500.00", 40), ("M", "7500.00", 25), ("L", "12000.00", 10)],
    ),
    (
        "Spring tulips",
        "https://cdn.example.com/img/tulips.jpg",
        [("S", "3500.00", 50), ("M", "6000.00", 30)],
    ),
    (
        "Peony bouquet",
        "https://cdn.example.com/img/peonies.jpg",
        [("M", "9000.00", 15), ("L", "15000.00", 5)],
    ),
    (
        "Greeting card",
        "https://cdn.example.com/img/card.jpg",
        [("", "500.00", 200)],
    ),
    (
        "Chocolate box",
        "https://cdn.example.com/img/chocolate.jpg",
        [("", "2500.00", 60)],
    ),
]

# (name, image, price, stock, [(product name, size, quantity)])
COMBOS = [
    (
        "Roses with chocolates",
        "https://cdn.example.com/img/combo-roses-choc.jpg",
        "9500.00",
        12,
        [("Red roses", "M", 1), ("Chocolate box", "", 1)],
    ),
    (
        "Tulips with a card",
        "https://cdn.example.com/img/combo-tulips-card.jpg",
        "6200.00",
        20,
        [("Spring tulips", "M", 1), ("Greeting card", "", 1)],
    ),
]

DEMO_USER = {
    "username": "demo",
    "email": "demo@example.com",
    "password": "DemoPass123",
    "first_name": "Demo",
    "last_name": "Shopper",
    "phone": "+77011234567",
}
DEMO_ADDRESS = "Abay Ave 10, apt 5, Almaty"


class Command(BaseCommand):
    help = "Seed a demo storefront catalog and a demo shopper."

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush", action="store_true", help="Delete existing catalog and cart data before seeding"
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["flush"]:
            self.stdout.write("Flushing existing data...")
            CartItem.objects.all().delete()
            SavedProduct.objects.all().delete()
            ComboItem.objects.all().delete()
            Combo.objects.all().delete()
            ProductVariant.objects.all().delete()
            Product.objects.all().delete()

        self.stdout.write("Seeding products...")
        variants = {}
        for name, image, sizes in PRODUCTS:
            product, _ = Product.objects.get_or_create(name=name, defaults={"image": image})
            for size, price, stock in sizes:
                variant, _ = ProductVariant.objects.update_or_create(
                    product=product,
                    size=size,
                    defaults={"price": Decimal(price), "stock_quantity": stock},
                )
                variants[(name, size)] = variant

        self.stdout.write("Seeding combos...")
        for name, image, price, stock, parts in COMBOS:
            combo, _ = Combo.objects.update_or_create(
                name=name,
                defaults={"image": image, "price": Decimal(price), "stock_quantity": stock},
            )
            for product_name, size, quantity in parts:
                ComboItem.objects.update_or_create(
                    combo=combo,
                    variant=variants[(product_name, size)],
                    defaults={"quantity": quantity},
                )

        self.stdout.write("Seeding demo shopper...")
        attrs = dict(DEMO_USER)
        password = attrs.pop("password")
        user, _ = User.objects.update_or_create(username=attrs.pop("username"), defaults=attrs)
        user.set_password(password)
        user.save()
        Address.objects.get_or_create(
            user=user, address_line=DEMO_ADDRESS, defaults={"is_default": True}
        )

        self.stdout.write(
            self.style.SUCCESS(
                f"Storefront seed completed: {len(variants)} variants, {len(COMBOS)} combos."
            )
        )
