"""Tests for request validation and the category/installment rule."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from household_bills.exceptions import BillValidationError
from household_bills.models.schemas import (
    Assignee,
    BillCategory,
    Installment,
    InstallmentPurchasePlan,
    StandardPlan,
)
from household_bills.services.validation import (
    INSTALLMENT_FORBIDDEN,
    INSTALLMENT_REQUIRED,
    parse_update,
    resolve_patch,
    validate_create,
)


def _existing(category: str = "electricity", installment=None) -> SimpleNamespace:
    return SimpleNamespace(category=category, installment=installment)


def _resolve(payload: dict, existing: SimpleNamespace):
    return resolve_patch(parse_update(payload), existing)


class TestValidateCreate:
    def test_valid_payload_is_coerced(self, bill_payload):
        draft = validate_create(bill_payload)

        assert draft.values.name == "Meralco"
        assert draft.values.amount == Decimal("2450.75")
        assert draft.values.due_date == date(2025, 3, 20)
        assert draft.values.assignee == Assignee.NONE
        assert isinstance(draft.plan, StandardPlan)
        assert draft.plan.installment is None
        assert draft.plan.source == "manual"

    def test_amount_accepts_numeric_string(self, spaylater_payload):
        draft = validate_create(spaylater_payload)

        assert draft.values.amount == Decimal("3999.00")
        assert isinstance(draft.plan, InstallmentPurchasePlan)
        assert draft.plan.installment == Installment.THREE_MONTHS
        assert draft.plan.source == "spaylater"

    def test_spaylater_without_installment_fails(self, spaylater_payload):
        del spaylater_payload["installment"]

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(spaylater_payload)

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_REQUIRED]}

    @pytest.mark.parametrize("category", ["electricity", "water", "internet", "grocery", "other"])
    def test_installment_on_other_category_fails(self, bill_payload, category):
        bill_payload.update(category=category, installment="bnpl")

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(bill_payload)

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_FORBIDDEN]}

    @pytest.mark.parametrize("amount", [0, -5, "-1.00", "abc"])
    def test_amount_must_be_positive_number(self, bill_payload, amount):
        bill_payload["amount"] = amount

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(bill_payload)

        assert "amount" in exc_info.value.field_errors

    @pytest.mark.parametrize("amount", ["0.001", 0.004])
    def test_amount_rounding_to_zero_is_rejected(self, bill_payload, amount):
        bill_payload["amount"] = amount

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(bill_payload)

        assert exc_info.value.field_errors == {"amount": ["Amount must be at least 0.01"]}

    def test_amount_is_rounded_half_up_to_cents(self, bill_payload):
        bill_payload["amount"] = "0.005"

        assert validate_create(bill_payload).values.amount == Decimal("0.01")

    @pytest.mark.parametrize("due_date", ["2025-3-20", "20-03-2025", "2025-02-30", "2025-03-20T00:00:00", 20250320])
    def test_due_date_must_be_strict_calendar_date(self, bill_payload, due_date):
        bill_payload["dueDate"] = due_date

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(bill_payload)

        assert exc_info.value.field_errors["dueDate"] == ["Use yyyy-mm-dd"]

    def test_missing_and_invalid_fields_are_collected(self):
        with pytest.raises(BillValidationError) as exc_info:
            validate_create({"name": "", "category": "rent", "assignee": "bob"})

        errors = exc_info.value.field_errors
        assert {"name", "amount", "dueDate", "category", "assignee"} <= set(errors)

    def test_non_object_body_is_form_error(self):
        with pytest.raises(BillValidationError) as exc_info:
            validate_create(["not", "an", "object"])

        assert exc_info.value.field_errors == {}
        assert exc_info.value.form_errors

    def test_flatten_shape(self, spaylater_payload):
        del spaylater_payload["installment"]

        with pytest.raises(BillValidationError) as exc_info:
            validate_create(spaylater_payload)

        assert exc_info.value.flatten() == {
            "formErrors": [],
            "fieldErrors": {"installment": [INSTALLMENT_REQUIRED]},
        }


class TestResolvePatch:
    def test_only_supplied_fields_are_kept(self):
        patch = _resolve({"name": "Water bill", "amount": "310"}, _existing())

        assert patch.changes == {"name": "Water bill", "amount": Decimal("310")}
        assert patch.plan is None

    @pytest.mark.parametrize("field", ["provider", "notes"])
    def test_empty_string_clears_to_none(self, field):
        patch = _resolve({field: ""}, _existing())

        assert patch.changes == {field: None}

    def test_explicit_null_on_required_field_fails(self):
        with pytest.raises(BillValidationError) as exc_info:
            parse_update({"name": None, "dueDate": None})

        assert set(exc_info.value.field_errors) == {"name", "dueDate"}

    def test_paid_at_can_be_cleared(self):
        patch = _resolve({"paidAt": None}, _existing())

        assert patch.changes == {"paid_at": None}

    def test_installment_checked_against_existing_category(self):
        with pytest.raises(BillValidationError) as exc_info:
            _resolve({"installment": "six_months"}, _existing("water"))

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_FORBIDDEN]}

    def test_installment_change_on_existing_spaylater(self):
        patch = _resolve({"installment": "twelve_months"}, _existing("spaylater", "bnpl"))

        assert patch.changes["installment"] == Installment.TWELVE_MONTHS
        assert patch.changes["category"] == BillCategory.SPAYLATER

    def test_clearing_installment_on_spaylater_fails(self):
        with pytest.raises(BillValidationError) as exc_info:
            _resolve({"installment": None}, _existing("spaylater", "bnpl"))

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_REQUIRED]}

    def test_switching_to_spaylater_requires_installment(self):
        with pytest.raises(BillValidationError) as exc_info:
            _resolve({"category": "spaylater"}, _existing("grocery"))

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_REQUIRED]}

    def test_switching_to_spaylater_with_installment(self):
        patch = _resolve({"category": "spaylater", "installment": "bnpl"}, _existing("grocery"))

        assert isinstance(patch.plan, InstallmentPurchasePlan)
        assert patch.changes["installment"] == Installment.BNPL

    def test_switching_away_from_spaylater_nulls_installment(self):
        patch = _resolve({"category": "internet"}, _existing("spaylater", "six_months"))

        assert isinstance(patch.plan, StandardPlan)
        assert patch.changes["category"] == BillCategory.INTERNET
        assert patch.changes["installment"] is None

    def test_switching_away_with_installment_fails(self):
        with pytest.raises(BillValidationError) as exc_info:
            _resolve({"category": "internet", "installment": "bnpl"}, _existing("spaylater", "bnpl"))

        assert exc_info.value.field_errors == {"installment": [INSTALLMENT_FORBIDDEN]}

    def test_unknown_status_is_rejected(self):
        with pytest.raises(BillValidationError) as exc_info:
            resolve_patch(parse_update({"status": "pending"}), _existing())

        assert "status" in exc_info.value.field_errors
