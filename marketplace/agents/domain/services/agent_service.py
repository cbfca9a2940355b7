"""
AgentService - agent directory, availability and proximity search.

Availability lives in UserSettings.agent_meta: an agent is offered work only
while its status is "available", it is accepting orders, it has passed KYC,
and its account is neither blocked nor deactivated.

Proximity search starts at a 5 km radius and widens in 5 km steps up to
20 km until at least one eligible agent is found.
"""

import math
from typing import Dict, Iterable, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Q

from marketplace.agents.domain.models import AgentLocation
from marketplace.infra.observability.metrics import nearby_agent_search_duration
from marketplace.ordering.domain.models import Order
from utils.pagination import paginate
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

User = get_user_model()

EARTH_RADIUS_KM = 6371
INITIAL_SEARCH_RADIUS_KM = 5
SEARCH_RADIUS_STEP_KM = 5
MAX_SEARCH_RADIUS_KM = 20
NEARBY_LIMIT = 10

AGENT_STATUSES = ("available", "busy", "away", "offline")
AGENT_ROLES = ("agent", "vendor")
LOCATION_FIELDS = ("latitude", "longitude", "radius", "is_active", "name", "address")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class AgentService(BaseService):
    # ===== Directory =====

    def list_agents(self, q: Optional[str] = None, is_active: Optional[bool] = None, page=1, size=10):
        queryset = User.objects.filter(role__in=AGENT_ROLES).select_related("settings").order_by("first_name")
        if q:
            queryset = queryset.filter(
                Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q)
            )
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        return service_ok(paginate(queryset, page, size))

    def get_agent(self, agent_id) -> ServiceResult:
        agent = User.objects.filter(pk=agent_id, role__in=AGENT_ROLES).select_related("settings").first()
        if agent is None:
            return service_err(ErrorCodes.USER_NOT_FOUND, "Agent not found")
        return service_ok(agent)

    def get_stats(self, agent) -> ServiceResult[Dict]:
        orders = Order.objects.filter(agent=agent)
        return service_ok(
            {
                "total_orders": orders.count(),
                "completed_orders": orders.filter(status="completed").count(),
                "cancelled_orders": orders.filter(status="cancelled").count(),
                "pending_orders": orders.filter(status__in=["pending", "accepted", "in_progress"]).count(),
                "unique_markets": orders.exclude(shopping_list__market__isnull=True)
                .values("shopping_list__market")
                .distinct()
                .count(),
            }
        )

    # ===== Availability =====

    @staticmethod
    def is_eligible(agent) -> ServiceResult:
        """Can this user be handed an order right now (ignoring their busy/available status)?"""
        if agent is None or getattr(agent, "role", None) not in AGENT_ROLES:
            return service_err(ErrorCodes.NOT_AGENT, "User is not an agent")
        if not agent.is_active:
            return service_err(ErrorCodes.AGENT_NOT_ELIGIBLE, "Agent account is inactive")
        user_settings = agent.get_settings()
        if user_settings.is_blocked or user_settings.is_deactivated:
            return service_err(ErrorCodes.AGENT_NOT_ELIGIBLE, "Agent account is blocked or deactivated")
        if not user_settings.is_kyc_verified:
            return service_err(ErrorCodes.AGENT_NOT_ELIGIBLE, "Agent has not completed KYC verification")
        return service_ok(agent)

    def set_status(self, agent, status: str) -> ServiceResult[Dict]:
        if status not in AGENT_STATUSES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Status must be one of {', '.join(AGENT_STATUSES)}")
        user_settings = agent.get_settings()
        user_settings.set_agent_status(status)
        user_settings.save(update_fields=["agent_meta", "updated_at"])
        self.logger.info(f"Agent {agent.id} status set to {status}")
        return self.get_status(agent)

    def get_status(self, agent) -> ServiceResult[Dict]:
        meta = agent.get_settings().agent_meta or {}
        return service_ok(
            {
                "status": meta.get("current_status", "offline"),
                "is_accepting_orders": bool(meta.get("is_accepting_orders", False)),
                "last_status_update": meta.get("last_status_update"),
            }
        )

    def mark_busy(self, agent):
        return self.set_status(agent, "busy")

    def mark_available(self, agent):
        return self.set_status(agent, "available")

    # ===== Locations =====

    def list_locations(self, agent) -> ServiceResult[List[AgentLocation]]:
        return service_ok(list(AgentLocation.objects.filter(agent=agent)))

    def create_location(self, agent, data: Dict) -> ServiceResult[AgentLocation]:
        location = AgentLocation.objects.create(
            agent=agent, **{key: value for key, value in data.items() if key in LOCATION_FIELDS}
        )
        return service_ok(location)

    def _own_location(self, agent, location_id) -> ServiceResult[AgentLocation]:
        location = AgentLocation.objects.filter(pk=location_id, agent=agent).first()
        if location is None:
            return service_err(ErrorCodes.LOCATION_NOT_FOUND, "Location not found")
        return service_ok(location)

    def update_location(self, agent, location_id, data: Dict) -> ServiceResult[AgentLocation]:
        result = self._own_location(agent, location_id)
        if not result.ok:
            return result
        location = result.value
        for key in LOCATION_FIELDS:
            if key in data:
                setattr(location, key, data[key])
        location.save()
        return service_ok(location)

    def delete_location(self, agent, location_id) -> ServiceResult[None]:
        result = self._own_location(agent, location_id)
        if not result.ok:
            return result
        result.value.delete()
        return service_ok(None)

    # ===== Proximity =====

    def _candidate_locations(self, exclude_ids: Iterable[str]):
        exclude_ids = {str(agent_id) for agent_id in exclude_ids or ()}
        locations = AgentLocation.objects.filter(
            is_active=True, agent__role__in=AGENT_ROLES, agent__is_active=True
        ).select_related("agent", "agent__settings")

        for location in locations:
            agent = location.agent
            if str(agent.id) in exclude_ids:
                continue
            user_settings = getattr(agent, "settings", None)
            if user_settings is None or not user_settings.is_kyc_verified:
                continue
            if user_settings.is_blocked or user_settings.is_deactivated:
                continue
            if user_settings.agent_status != "available" or not user_settings.is_accepting_orders:
                continue
            yield location

    @BaseService.log_performance
    def find_nearby_agents(
        self,
        latitude: float,
        longitude: float,
        exclude_ids: Optional[Iterable[str]] = None,
        limit: int = NEARBY_LIMIT,
    ) -> ServiceResult[List[Dict]]:
        """
        Eligible agents around a point, nearest first.

        Each agent appears once, at the distance of its closest active location.
        """
        with nearby_agent_search_duration.time():
            closest: Dict[str, Dict] = {}
            for location in self._candidate_locations(exclude_ids):
                distance = haversine_km(latitude, longitude, float(location.latitude), float(location.longitude))
                key = str(location.agent_id)
                if key not in closest or distance < closest[key]["distance_km"]:
                    closest[key] = {"agent": location.agent, "location": location, "distance_km": distance}

            radius = INITIAL_SEARCH_RADIUS_KM
            matches: List[Dict] = []
            while radius <= MAX_SEARCH_RADIUS_KM:
                matches = [entry for entry in closest.values() if entry["distance_km"] <= radius]
                if matches:
                    break
                radius += SEARCH_RADIUS_STEP_KM

        matches.sort(key=lambda entry: entry["distance_km"])
        for entry in matches:
            entry["distance_km"] = round(entry["distance_km"], 2)
            entry["search_radius_km"] = radius
        return service_ok(matches[:limit])

    def find_nearest_agent(self, latitude: float, longitude: float, exclude_ids=None) -> ServiceResult:
        result = self.find_nearby_agents(latitude, longitude, exclude_ids=exclude_ids, limit=1)
        if not result.value:
            return service_err(ErrorCodes.NO_AGENT_AVAILABLE, "No available agents nearby")
        return service_ok(result.value[0]["agent"])

    def available_agents_for_list(self, shopping_list, exclude_ids=None) -> ServiceResult[List[Dict]]:
        coordinates = shopping_list.market.coordinates if shopping_list.market else None
        if coordinates is None:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Shopping list market has no location")
        return self.find_nearby_agents(*coordinates, exclude_ids=exclude_ids)

    def available_orders(self, agent, page=1, size=10) -> ServiceResult[Dict]:
        """Pending orders nobody has picked up and this agent has not turned down."""
        queryset = Order.objects.filter(
            status="pending", agent__isnull=True, shopping_list__agent__isnull=True
        ).select_related("shopping_list", "shopping_list__market", "customer")
        agent_id = str(agent.id)
        order_ids = [order.id for order in queryset if agent_id not in order.rejected_agent_ids()]
        return service_ok(paginate(Order.objects.filter(pk__in=order_ids).order_by("created_at"), page, size))

