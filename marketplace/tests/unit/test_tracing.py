from unittest import mock

import pytest

from marketplace.infra.observability import tracing


@pytest.mark.unit
class TestSetupTracing:
    def test_disabled_tracing_installs_nothing(self):
        with mock.patch.object(tracing.trace, "set_tracer_provider") as set_provider:
            assert tracing.setup_tracing(enable=False) is False

        set_provider.assert_not_called()

    def test_second_setup_is_skipped(self):
        with mock.patch.object(tracing, "_initialized", True), mock.patch.object(
            tracing.trace, "set_tracer_provider"
        ) as set_provider:
            assert tracing.setup_tracing(enable=True) is False

        set_provider.assert_not_called()


@pytest.mark.unit
class TestSpanAttributes:
    def test_keys_are_dotted_and_values_stringified(self):
        span = mock.Mock()

        tracing.add_span_attributes(span, order__id=42, discount__code=None, page=1)

        span.set_attribute.assert_has_calls([mock.call("order.id", "42"), mock.call("page", "1")])
        assert span.set_attribute.call_count == 2
