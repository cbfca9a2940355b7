from .discount import DiscountCampaign, DiscountUsage

__all__ = ["DiscountCampaign", "DiscountUsage"]
