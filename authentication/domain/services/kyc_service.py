"""
KycService - identity verification for agents.

An agent provides an 11-digit NIN and a set of verification image URLs;
submitting both marks the agent as KYC verified, which is a precondition for
being assigned orders.
"""

import re
from typing import Dict, List

from django.db import transaction
from django.utils import timezone

from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

NIN_PATTERN = re.compile(r"^\d{11}$")


class KycService(BaseService):
    def __init__(self, dispatcher=None):
        super().__init__()
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from infrastructure.container import container

            self._dispatcher = container.notification_dispatcher()
        return self._dispatcher

    def _check_agent(self, user) -> ServiceResult:
        if not user.is_agent:
            return service_err(ErrorCodes.NOT_AGENT, "Only agents can perform KYC verification")
        if not user.is_email_verified:
            return service_err(ErrorCodes.EMAIL_NOT_VERIFIED, "Please verify your email before starting KYC")
        return service_ok(user.get_settings())

    def _save_meta(self, user_settings, **changes):
        meta = dict(user_settings.agent_meta or {})
        meta.update(changes)
        user_settings.agent_meta = meta
        user_settings.save(update_fields=["agent_meta", "updated_at"])

    @BaseService.log_performance
    def upload_nin(self, user, nin: str) -> ServiceResult[Dict]:
        check = self._check_agent(user)
        if not check.ok:
            return check
        nin = (nin or "").strip()
        if not NIN_PATTERN.match(nin):
            return service_err(ErrorCodes.VALIDATION_ERROR, "NIN must be exactly 11 digits")

        self._save_meta(check.value, nin=nin)
        return self.get_status(user)

    @BaseService.log_performance
    def upload_images(self, user, images: List[str]) -> ServiceResult[Dict]:
        check = self._check_agent(user)
        if not check.ok:
            return check
        images = [url for url in (images or []) if url]
        if not images:
            return service_err(ErrorCodes.VALIDATION_ERROR, "At least one verification image is required")

        self._save_meta(check.value, images=images)
        return self.get_status(user)

    def get_status(self, user) -> ServiceResult[Dict]:
        check = self._check_agent(user)
        if not check.ok:
            return check
        return service_ok(self._status(check.value))

    @staticmethod
    def _status(user_settings) -> Dict:
        meta = user_settings.agent_meta or {}
        return {
            "nin_provided": bool(meta.get("nin")),
            "images_provided": bool(meta.get("images")),
            "kyc_complete": bool(meta.get("kyc_complete")),
            "is_kyc_verified": user_settings.is_kyc_verified,
        }

    @BaseService.log_performance
    def submit(self, user) -> ServiceResult[Dict]:
        check = self._check_agent(user)
        if not check.ok:
            return check
        return self._complete(user, check.value)

    @BaseService.log_performance
    def approve(self, agent) -> ServiceResult[Dict]:
        """Admin approval; skips the email check but still needs the documents."""
        if not agent.is_agent:
            return service_err(ErrorCodes.NOT_AGENT, "User is not an agent")
        return self._complete(agent, agent.get_settings())

    def _complete(self, user, user_settings) -> ServiceResult[Dict]:
        meta = user_settings.agent_meta or {}
        if not meta.get("nin") or not meta.get("images"):
            return service_err(ErrorCodes.KYC_INCOMPLETE, "NIN and verification images are required")

        with transaction.atomic():
            meta = dict(meta)
            meta["kyc_complete"] = True
            meta["kyc_completed_at"] = timezone.now().isoformat()
            user_settings.agent_meta = meta
            user_settings.is_kyc_verified = True
            user_settings.save(update_fields=["agent_meta", "is_kyc_verified", "updated_at"])

        self.logger.info(f"Agent {user.id} is now KYC verified")
        self.dispatcher.dispatch(
            user=user,
            title="KYC_VERIFIED",
            heading="Verification complete",
            message="Your identity has been verified. You can now accept orders.",
            resource=str(user.id),
            priority="high",
        )
        return service_ok(self._status(user_settings))
