import factory

from authentication.tests.factories import UserFactory
from support.domain.models import SupportTicket


class SupportTicketFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SupportTicket

    user = factory.SubFactory(UserFactory)
    name = factory.LazyAttribute(lambda ticket: ticket.user.full_name if ticket.user else "Guest")
    email = factory.LazyAttribute(lambda ticket: ticket.user.email if ticket.user else "guest@example.com")
    subject = factory.Sequence(lambda n: f"Problem {n}")
    message = factory.Faker("paragraph")
