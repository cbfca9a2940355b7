import pytest

from notifications.domain.services.dispatcher import broker_priority, compute_email_delay, should_send_email


@pytest.mark.unit
class TestShouldSendEmail:
    def test_urgent_always_emails(self):
        assert should_send_email("CHAT_MESSAGE_RECEIVED", "urgent", False, True, 0)

    def test_low_priority_skips_online_users(self):
        assert not should_send_email("ORDER_STATUS_UPDATED", "low", True, True, 0)

    def test_low_priority_emails_offline_users(self):
        assert should_send_email("ORDER_STATUS_UPDATED", "low", False, False, None)

    def test_requires_email_wins_over_presence(self):
        assert should_send_email("KYC_VERIFIED", "normal", True, True, 0)

    def test_chat_types_never_email_without_urgency(self):
        assert not should_send_email("CHAT_MESSAGE_RECEIVED", "high", False, False, 30)

    def test_offline_user_is_emailed(self):
        assert should_send_email("ORDER_CREATED", "normal", False, False, None)

    def test_online_but_idle_user_is_emailed(self):
        assert should_send_email("ORDER_CREATED", "normal", False, True, 2)

    def test_active_user_is_not_emailed(self):
        assert not should_send_email("ORDER_CREATED", "normal", False, True, 1)


@pytest.mark.unit
class TestComputeEmailDelay:
    def test_urgent_is_immediate_even_with_explicit_delay(self):
        assert compute_email_delay("urgent", 15, 0) == 0

    def test_explicit_delay_is_honoured(self):
        assert compute_email_delay("normal", 7, 0) == 7

    def test_negative_explicit_delay_is_clamped(self):
        assert compute_email_delay("normal", -3, None) == 0

    def test_long_absence_is_immediate(self):
        assert compute_email_delay("normal", None, 10) == 0

    def test_default_delay(self):
        assert compute_email_delay("high", None, 3) == 5
        assert compute_email_delay("normal", None, None) == 5


@pytest.mark.unit
@pytest.mark.parametrize(
    "priority,expected",
    [("urgent", 0), ("high", 2), ("normal", 4), ("low", 7), ("unknown", 4)],
)
def test_broker_priority(priority, expected):
    assert broker_priority(priority) == expected
