from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    # Names, credentials and flags come from AbstractUser.
    phone = models.CharField(max_length=50, blank=True, null=True)
    email = models.EmailField(unique=True)

    def __str__(self):
        return self.username


class Address(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='addresses')
    address_line = models.CharField(max_length=200)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-is_default", "id")

    def __str__(self):
        return self.address_line
