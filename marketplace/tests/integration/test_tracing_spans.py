from contextlib import ExitStack
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AgentFactory
from marketplace.tests.factories import (
    DiscountCampaignFactory,
    MarketFactory,
    ProductFactory,
    ShoppingListFactory,
    ShoppingListItemFactory,
    UserFactory,
)

TRACED_MODULES = (
    "marketplace.catalog.domain.services.catalog_service",
    "marketplace.ordering.domain.services.order_service",
    "marketplace.ordering.domain.services.shopping_list_service",
)


class ServiceSpansIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(self.exporter))
        tracer = provider.get_tracer("tests")

        stack = ExitStack()
        for module in TRACED_MODULES:
            stack.enter_context(mock.patch(f"{module}.tracer", tracer))
        self.addCleanup(stack.close)

    def spans(self):
        return {span.name: span for span in self.exporter.get_finished_spans()}

    def test_payment_traces_order_creation_and_assignment(self):
        customer = UserFactory()
        agent = AgentFactory()
        shopping_list = ShoppingListFactory(customer=customer, agent=agent, status="accepted")
        ShoppingListItemFactory(shopping_list=shopping_list, quantity=2, estimated_price=Decimal("20.00"))
        DiscountCampaignFactory(code="SAVE10")
        self.client.force_authenticate(user=customer)

        response = self.client.post(
            reverse("marketplace:shopping-list-payment", args=[shopping_list.id]),
            {"payment_id": "pay_1", "discount_code": "SAVE10"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        spans = self.spans()
        for name in (
            "shopping_list_record_payment",
            "order_create_transaction",
            "calculate_totals",
            "save_order",
            "order_assign_agent",
        ):
            self.assertIn(name, spans)

        payment = spans["shopping_list_record_payment"]
        self.assertEqual(payment.attributes["discount.code"], "SAVE10")
        self.assertEqual(payment.attributes["order.discount"], "4.00")
        create = spans["order_create_transaction"]
        self.assertEqual(create.attributes["shopping_list.id"], str(shopping_list.id))
        self.assertEqual(create.attributes["order.number"], response.data["order"]["order_number"])
        self.assertEqual(spans["save_order"].parent.span_id, create.context.span_id)
        self.assertEqual(spans["order_assign_agent"].attributes["agent.id"], str(agent.id))

    def test_catalogue_listings_are_traced(self):
        market = MarketFactory(market_type="supermarket")
        ProductFactory.create_batch(2, market=market)

        self.client.get(reverse("marketplace:market-list"), {"market_type": "supermarket"})
        self.client.get(reverse("marketplace:product-list"), {"market": str(market.id)})

        spans = self.spans()
        self.assertEqual(spans["catalog_list_markets"].attributes["market_type"], "supermarket")
        self.assertEqual(spans["catalog_list_markets"].attributes["results.count"], 1)
        self.assertEqual(spans["catalog_list_products"].attributes["market.id"], str(market.id))
        self.assertEqual(spans["catalog_list_products"].attributes["results.count"], 2)
