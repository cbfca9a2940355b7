"""
AddressService - saved delivery addresses for a user.

At most one active address per user is the default. The first address a user
saves becomes the default automatically, and deleting an address only
deactivates it so that historical orders keep a valid reference.
"""

from typing import Dict, Optional

from django.db import transaction
from django.utils import timezone

from authentication.domain.models.address import UserAddress
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

EDITABLE_FIELDS = (
    "title",
    "type",
    "full_address",
    "address",
    "city",
    "state",
    "country",
    "postal_code",
    "latitude",
    "longitude",
    "additional_directions",
    "contact_phone",
    "contact_name",
)


class AddressService(BaseService):
    def _active(self, user):
        return UserAddress.objects.filter(user=user, is_active=True)

    def list_addresses(self, user, address_type: Optional[str] = None):
        queryset = self._active(user)
        if address_type:
            queryset = queryset.filter(type=address_type)
        return service_ok(list(queryset))

    def get_address(self, user, address_id) -> ServiceResult[UserAddress]:
        address = self._active(user).filter(pk=address_id).first()
        if address is None:
            return service_err(ErrorCodes.ADDRESS_NOT_FOUND, "Address not found")
        return service_ok(address)

    @BaseService.log_performance
    @transaction.atomic
    def create_address(self, user, data: Dict) -> ServiceResult[UserAddress]:
        fields = {key: data[key] for key in EDITABLE_FIELDS if key in data}
        make_default = bool(data.get("is_default")) or not self._active(user).exists()
        if make_default:
            self._active(user).update(is_default=False)
        address = UserAddress.objects.create(user=user, is_default=make_default, **fields)
        return service_ok(address)

    @BaseService.log_performance
    @transaction.atomic
    def update_address(self, user, address_id, data: Dict) -> ServiceResult[UserAddress]:
        result = self.get_address(user, address_id)
        if not result.ok:
            return result
        address = result.value
        for key in EDITABLE_FIELDS:
            if key in data:
                setattr(address, key, data[key])
        if data.get("is_default"):
            self._active(user).exclude(pk=address.pk).update(is_default=False)
            address.is_default = True
        address.save()
        return service_ok(address)

    @transaction.atomic
    def delete_address(self, user, address_id) -> ServiceResult[None]:
        result = self.get_address(user, address_id)
        if not result.ok:
            return result
        address = result.value
        address.is_active = False
        was_default = address.is_default
        address.is_default = False
        address.save(update_fields=["is_active", "is_default", "updated_at"])

        if was_default:
            successor = self._active(user).order_by("-last_used_at", "-created_at").first()
            if successor:
                successor.is_default = True
                successor.save(update_fields=["is_default", "updated_at"])
        return service_ok(None)

    @transaction.atomic
    def set_default(self, user, address_id) -> ServiceResult[UserAddress]:
        result = self.get_address(user, address_id)
        if not result.ok:
            return result
        self._active(user).update(is_default=False)
        address = result.value
        address.is_default = True
        address.save(update_fields=["is_default", "updated_at"])
        return service_ok(address)

    def get_default(self, user) -> ServiceResult[UserAddress]:
        address = self._active(user).filter(is_default=True).first()
        if address is None:
            return service_err(ErrorCodes.ADDRESS_NOT_FOUND, "No default address set")
        return service_ok(address)

    def mark_used(self, user, address_id) -> ServiceResult[UserAddress]:
        result = self.get_address(user, address_id)
        if not result.ok:
            return result
        address = result.value
        address.last_used_at = timezone.now()
        address.save(update_fields=["last_used_at", "updated_at"])
        return service_ok(address)
