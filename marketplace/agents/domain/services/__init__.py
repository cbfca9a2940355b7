from .agent_service import AgentService, haversine_km

__all__ = ["AgentService", "haversine_km"]
