import pytest

from marketplace.ordering.domain.order_number import (
    ALPHABET,
    PREFIX,
    generate_order_number,
    is_valid_order_number,
)


@pytest.mark.unit
class TestOrderNumber:
    def test_format(self):
        number = generate_order_number(lambda candidate: False)

        assert number.startswith(PREFIX)
        assert len(number) == len(PREFIX) + 5
        assert all(char in ALPHABET for char in number[len(PREFIX) :])
        assert is_valid_order_number(number)

    def test_retries_on_collision(self):
        seen = []

        def is_taken(candidate):
            seen.append(candidate)
            return len(seen) < 3

        number = generate_order_number(is_taken)

        assert len(seen) == 3
        assert number == seen[-1]

    def test_falls_back_to_clock_suffix(self):
        number = generate_order_number(lambda candidate: True)

        assert len(number) == len(PREFIX) + 7
        assert number[-4:].isdigit()

    @pytest.mark.parametrize("value", ["", "B2S-", "B2S-ABC", "ORD-ABCDE", "B2S-ABCD0", "b2s-abcde"])
    def test_invalid_numbers(self, value):
        assert not is_valid_order_number(value)
