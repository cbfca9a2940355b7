import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .catalog import Market, Product


class Review(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reviews")
    market = models.ForeignKey(Market, on_delete=models.CASCADE, null=True, blank=True, related_name="reviews")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, null=True, blank=True, related_name="reviews")

    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                check=(
                    models.Q(market__isnull=False, product__isnull=True)
                    | models.Q(market__isnull=True, product__isnull=False)
                ),
                name="review_single_target",
            ),
            models.UniqueConstraint(
                fields=["reviewer", "market"], condition=models.Q(market__isnull=False), name="unique_market_review"
            ),
            models.UniqueConstraint(
                fields=["reviewer", "product"], condition=models.Q(product__isnull=False), name="unique_product_review"
            ),
        ]

    def __str__(self):
        target = self.market or self.product
        return f"{self.rating}/5 for {target} by {self.reviewer}"
