from typing import Optional

from apps.common.repository import GenericRepository
from .models import Address


class AddressRepository(GenericRepository[Address]):
    def __init__(self):
        super().__init__(Address)

    def default_for_user(self, user_id: int) -> Optional[Address]:
        """The flagged default, else the oldest address on file."""
        return self.model.objects.filter(user_id=user_id).order_by("-is_default", "id").first()
