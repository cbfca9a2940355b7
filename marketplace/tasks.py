"""
Marketplace Celery Tasks

Agent assignment for paid orders that do not have an agent yet, and expiry
of discount campaigns that have run their course.
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=5, queue="marketplace_tasks")
def assign_agent_to_order(self, order_id):
    """
    Assign the nearest available agent to a pending order.

    Agents who rejected the order are skipped. When nobody is available the
    task retries with exponential backoff; an order that is no longer pending
    ends the job.

    Returns:
        dict: Assignment result
    """
    from infrastructure.container import container
    from marketplace.ordering.domain.models import Order

    order = Order.objects.select_related("shopping_list", "shopping_list__market").filter(pk=order_id).first()
    if order is None:
        logger.error(f"Agent assignment: order {order_id} not found")
        return {"success": False, "order_id": order_id, "error": "Order not found"}

    if order.status != "pending" or order.agent_id:
        logger.info(f"Agent assignment: order {order_id} is {order.status}, nothing to do")
        return {"success": True, "order_id": order_id, "skipped": True, "status": order.status}

    market = order.shopping_list.market
    coordinates = market.coordinates if market else None
    if coordinates is None:
        logger.error(f"Agent assignment: order {order_id} has no market location")
        return {"success": False, "order_id": order_id, "error": "Market has no location"}

    nearest = container.agent_service().find_nearest_agent(*coordinates, exclude_ids=order.rejected_agent_ids())
    if nearest.ok:
        agent = nearest.value
        assigned = container.order_service().assign_order_to_agent(order.id, agent)
        if assigned.ok:
            container.notification_dispatcher().dispatch(
                user=agent,
                title="NEW_SHOPPING_LIST",
                heading="New order",
                message=f"You have been assigned order {order.order_number}.",
                resource=str(order.id),
                priority="high",
            )
            logger.info(f"Agent assignment: order {order_id} assigned to {agent.id}")
            return {"success": True, "order_id": order_id, "agent_id": str(agent.id)}
        error = assigned.error_detail
    else:
        error = nearest.error_detail

    logger.warning(f"Agent assignment for order {order_id} failed (attempt {self.request.retries + 1}): {error}")
    try:
        raise self.retry(countdown=60 * (2**self.request.retries))
    except self.MaxRetriesExceededError:
        logger.critical(f"Agent assignment for order {order_id} gave up after {self.max_retries} retries")
        return {"success": False, "order_id": order_id, "error": f"Max retries exceeded: {error}"}


@shared_task(bind=True, queue="marketplace_tasks")
def expire_discount_campaigns(self):
    """Flip active campaigns past their end date to expired."""
    from infrastructure.container import container

    expired = container.discount_service().expire_campaigns()
    return {"expired": expired}
