"""Tests for the model allow-list and premium tier."""

import pytest

from llm_relay.errors import ValidationError
from llm_relay.models import ModelDescriptor
from llm_relay.policy import INVALID_MODEL, PREMIUM_REQUIRED, ModelAccessPolicy, is_premium_header

CATALOG = (
    ModelDescriptor(id="free-model", display_name="Free", is_default=True),
    ModelDescriptor(id="paid-model", display_name="Paid", is_premium=True, supports_vision=True),
)


@pytest.fixture
def policy():
    return ModelAccessPolicy(CATALOG)


@pytest.mark.parametrize("premium", [True, False])
def test_unknown_model_is_invalid(policy, premium):
    decision = policy.check_access("no-such-model", premium)

    assert not decision.allowed
    assert decision.kind == INVALID_MODEL
    assert decision.status_code == 400


def test_premium_model_requires_entitlement(policy):
    decision = policy.check_access("paid-model", premium=False)

    assert decision.kind == PREMIUM_REQUIRED
    assert decision.status_code == 403


def test_premium_model_with_entitlement_is_allowed(policy):
    assert policy.check_access("paid-model", premium=True).allowed


@pytest.mark.parametrize("premium", [True, False])
def test_free_model_is_always_allowed(policy, premium):
    assert policy.check_access("free-model", premium).allowed


def test_rejection_raises_validation_error(policy):
    with pytest.raises(ValidationError) as excinfo:
        policy.check_access("paid-model", premium=False).raise_for_rejection("paid-model")

    assert excinfo.value.status_code == 403
    assert excinfo.value.to_body()["error"] == PREMIUM_REQUIRED


def test_free_listing_hides_premium_models_and_flag(policy):
    models = policy.list_models(include_premium=False)

    assert models == [
        {"id": "free-model", "displayName": "Free", "isDefault": True, "supportsVision": False}
    ]


def test_premium_listing_includes_everything(policy):
    models = policy.list_models(include_premium=True)

    assert [m["id"] for m in models] == ["free-model", "paid-model"]
    assert models[1]["isPremium"] is True


@pytest.mark.parametrize(
    "value,expected",
    [("true", True), ("TRUE", True), (" True ", True), ("1", False), ("false", False), (None, False)],
)
def test_premium_header_parsing(value, expected):
    assert is_premium_header(value) is expected
