from .location import AgentLocation

__all__ = ["AgentLocation"]
