"""
ReviewService - market and product reviews.

A review targets exactly one market or one product, and each user may review
a given target once. Only the author may edit a review; the author or an
admin may delete it.
"""

from typing import Dict, Optional

from django.db.models import Avg, Count

from marketplace.catalog.domain.models import Market, Product, Review
from utils.pagination import paginate
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


class ReviewService(BaseService):
    def _resolve_target(self, market_id: Optional[str], product_id: Optional[str]) -> ServiceResult[Dict]:
        if bool(market_id) == bool(product_id):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Provide exactly one of market_id or product_id")
        if market_id:
            market = Market.objects.filter(pk=market_id).first()
            if market is None:
                return service_err(ErrorCodes.MARKET_NOT_FOUND, "Market not found")
            return service_ok({"market": market})
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found")
        return service_ok({"product": product})

    @BaseService.log_performance
    def create_review(
        self,
        user,
        rating: int,
        comment: str = "",
        images=None,
        market_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> ServiceResult[Review]:
        if rating is None or not 1 <= int(rating) <= 5:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Rating must be between 1 and 5")

        target = self._resolve_target(market_id, product_id)
        if not target.ok:
            return target

        if Review.objects.filter(reviewer=user, **target.value).exists():
            return service_err(ErrorCodes.DUPLICATE_REVIEW, "You have already reviewed this item")

        review = Review.objects.create(
            reviewer=user, rating=int(rating), comment=comment or "", images=images or [], **target.value
        )
        return service_ok(review)

    def list_reviews(
        self, market_id: Optional[str] = None, product_id: Optional[str] = None, page: int = 1, size: int = 10
    ) -> ServiceResult[Dict]:
        queryset = Review.objects.select_related("reviewer")
        if market_id:
            queryset = queryset.filter(market_id=market_id)
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        return service_ok(paginate(queryset, page, size))

    def list_user_reviews(self, user, page: int = 1, size: int = 10) -> ServiceResult[Dict]:
        return service_ok(paginate(Review.objects.filter(reviewer=user), page, size))

    def get_review(self, review_id) -> ServiceResult[Review]:
        review = Review.objects.select_related("reviewer").filter(pk=review_id).first()
        if review is None:
            return service_err(ErrorCodes.REVIEW_NOT_FOUND, "Review not found")
        return service_ok(review)

    def update_review(self, user, review_id, data: Dict) -> ServiceResult[Review]:
        result = self.get_review(review_id)
        if not result.ok:
            return result
        review = result.value
        if review.reviewer_id != user.id:
            return service_err(ErrorCodes.NOT_OWNER, "You can only edit your own reviews")
        if "market_id" in data or "product_id" in data:
            return service_err(ErrorCodes.VALIDATION_ERROR, "The review target cannot be changed")

        if "rating" in data:
            if not 1 <= int(data["rating"]) <= 5:
                return service_err(ErrorCodes.VALIDATION_ERROR, "Rating must be between 1 and 5")
            review.rating = int(data["rating"])
        if "comment" in data:
            review.comment = data["comment"]
        if "images" in data:
            review.images = data["images"]
        review.save()
        return service_ok(review)

    def delete_review(self, user, review_id) -> ServiceResult[None]:
        result = self.get_review(review_id)
        if not result.ok:
            return result
        if result.value.reviewer_id != user.id and not is_admin(user):
            return service_err(ErrorCodes.PERMISSION_DENIED, "You cannot delete this review")
        result.value.delete()
        return service_ok(None)

    def average_rating(self, market_id: Optional[str] = None, product_id: Optional[str] = None) -> ServiceResult[Dict]:
        target = self._resolve_target(market_id, product_id)
        if not target.ok:
            return target
        stats = Review.objects.filter(**target.value).aggregate(average=Avg("rating"), count=Count("id"))
        average = round(float(stats["average"]), 2) if stats["average"] is not None else 0.0
        return service_ok({"average_rating": average, "review_count": stats["count"]})
