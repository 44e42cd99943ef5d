"""Tests for sales signal detection."""

import pytest

from callrelay.core.sales_detector import is_sales_flagged


@pytest.mark.parametrize(
    "text",
    [
        "I'd like to BUY these shoes",
        "can I purchase a gift card",
        "I want to order two pairs",
        "how do I pay",
        "it costs $40",
        "about €30",
        "£25 please",
    ],
)
def test_flags_sales_language(text):
    assert is_sales_flagged(text) is True


@pytest.mark.parametrize(
    "text",
    [
        "what are your hours?",
        "we ship across the border",
        "my recorder broke",
        "I'll repay you tomorrow",
        "",
        None,
    ],
)
def test_ignores_other_text(text):
    assert is_sales_flagged(text) is False
