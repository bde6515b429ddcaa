"""
Transaction Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- Title present and not blank
- Amount text present, and positive once parsed
- An account selected
- Any failure here blocks the save

STAGE 2 - PLAUSIBILITY:
- Dates too far in the future
- Absurd amounts
- Only warnings; the user may save anyway

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes a form. The one silent
policy in this module is parse_amount_or_zero(), and the validator
reports the result of that policy instead of hiding it.
"""

import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from pocketledger.config import AppSettings, get_settings
from pocketledger.models.state import TransactionFormState
from pocketledger.models.validation import ValidationIssue, ValidationResult


# A non-negative decimal numeral, or any prefix of one
AMOUNT_INPUT_PATTERN = re.compile(r"[0-9]*\.?[0-9]*")

TITLE_MAX_LENGTH = 200


def is_acceptable_amount_input(text: str) -> bool:
    """
    Whether the amount field may take this text.

    Accepts "", "12", "12." and "12.5". Rejects a second decimal
    point, a sign, and any other character.
    """
    return AMOUNT_INPUT_PATTERN.fullmatch(text) is not None


def parse_amount_or_zero(text: str) -> Decimal:
    """
    Parse amount text, defaulting to zero when it is not a number.

    This is the form's amount policy: "." or "" silently become 0.
    Swap this function out to change the policy.
    """
    text = text.strip()
    if not is_acceptable_amount_input(text):
        return Decimal("0")
    try:
        return Decimal(text)
    except InvalidOperation:
        return Decimal("0")


class TransactionFormValidator:
    """
    Validates the add/edit transaction form before it is saved.

    Stage 1: Required fields (errors)
    Stage 2: Plausibility checks (warnings)
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        today: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize validator.

        Args:
            settings: Thresholds for the plausibility checks.
                     If None, the application settings are used.
            today: Clock used for the future date check.
        """
        self._settings = settings or get_settings().app
        self._today = today

    def _validate_required(
        self,
        state: TransactionFormState,
    ) -> list[ValidationIssue]:
        issues = []

        if not state.title.strip():
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
                suggested_fix="Enter a short title for the transaction",
            ))
        elif len(state.title) > TITLE_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="title",
                issue_type="too_long",
                message=f"Title must be at most {TITLE_MAX_LENGTH} characters",
                severity="error",
                suggested_fix="Move the details to the description",
            ))

        if not state.amount.strip():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter the amount of the transaction",
            ))
        elif parse_amount_or_zero(state.amount) <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Use the transaction type to record money coming in",
            ))

        if state.selected_account_id is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="An account must be selected",
                severity="error",
                suggested_fix="Pick an account, or create one first",
            ))

        return issues

    def _validate_plausibility(
        self,
        state: TransactionFormState,
    ) -> list[ValidationIssue]:
        issues = []

        # Future date check (with tolerance)
        max_future_days = self._settings.future_date_tolerance_days
        latest_date = self._today().date() + timedelta(days=max_future_days)
        if state.date.date() > latest_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({state.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        amount = parse_amount_or_zero(state.amount)
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def validate(self, state: TransactionFormState) -> ValidationResult:
        """
        Run both stages over a form snapshot.

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_required(state)
        if not issues:
            issues.extend(self._validate_plausibility(state))
        return ValidationResult(issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One message per issue, errors first, for display under the form."""
        if not result.issues:
            return ""
        lines = [f"❌ {issue.message}" for issue in result.errors]
        lines.extend(f"⚠️ {issue.message}" for issue in result.warnings)
        return "\n".join(lines)
