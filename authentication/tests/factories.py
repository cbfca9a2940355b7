import uuid

import factory
from django.contrib.auth import get_user_model
from faker import Faker

from authentication.models import UserAddress

User = get_user_model()
fake = Faker()


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    first_name = factory.LazyFunction(fake.first_name)
    last_name = factory.LazyFunction(fake.last_name)
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    is_email_verified = True
    role = "customer"


class AgentFactory(UserFactory):
    role = "agent"
    username = factory.Sequence(lambda n: f"agent_{n}")
    email = factory.Sequence(lambda n: f"agent_{n}@example.com")

    @factory.post_generation
    def agent_status(obj, create, extracted, **kwargs):
        """Agents start KYC-verified and available unless told otherwise."""
        if not create:
            return
        user_settings = obj.settings
        user_settings.is_kyc_verified = kwargs.get("kyc", True)
        user_settings.set_agent_status(extracted or "available")
        user_settings.save()


class AdminFactory(UserFactory):
    role = "admin"
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class UserAddressFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = UserAddress

    user = factory.SubFactory(UserFactory)
    title = "Home"
    full_address = factory.LazyFunction(fake.address)
    city = "Lagos"
    state = "Lagos"
    latitude = "6.5244000"
    longitude = "3.3792000"
