from .address_service import AddressService
from .admin_service import AdminService
from .auth_service import AuthService
from .kyc_service import KycService

__all__ = ["AuthService", "KycService", "AddressService", "AdminService"]
