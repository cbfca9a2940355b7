from prometheus_client import Counter, Histogram


# Order Metrics
orders_created_total = Counter("marketplace_orders_created_total", "Total orders created")
order_status_transitions_total = Counter(
    "marketplace_order_status_transitions_total", "Order status changes", ["status"]
)
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[1000, 5000, 10000, 25000, 50000, 100000, 250000, float("inf")],
)

# Shopping list Metrics
shopping_list_transitions_total = Counter(
    "marketplace_shopping_list_transitions_total", "Shopping list status changes", ["status"]
)

# Agent Metrics
agent_assignments_total = Counter("marketplace_agent_assignments_total", "Agent assignment attempts", ["outcome"])
nearby_agent_search_duration = Histogram("marketplace_nearby_agent_search_seconds", "Nearby agent search time")

# Promotion Metrics
discount_redemptions_total = Counter(
    "marketplace_discount_redemptions_total", "Discounts applied to orders", ["discount_type"]
)
discount_rejections_total = Counter("marketplace_discount_rejections_total", "Discount codes refused", ["reason"])
