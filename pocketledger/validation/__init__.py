"""Transaction form validation."""

from pocketledger.validation.validator import (
    AMOUNT_INPUT_PATTERN,
    TransactionFormValidator,
    is_acceptable_amount_input,
    parse_amount_or_zero,
)

__all__ = [
    "AMOUNT_INPUT_PATTERN",
    "TransactionFormValidator",
    "is_acceptable_amount_input",
    "parse_amount_or_zero",
]
