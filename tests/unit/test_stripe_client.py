import stripe

from storefront.checkout import stripe_client
from storefront.checkout.stripe_client import (
    DEFAULT_DECLINE_MESSAGE,
    ERROR,
    REQUIRES_ACTION,
    result_from_intent,
)


def test_result_from_succeeded_intent():
    result = result_from_intent({"id": "pi_1", "status": "succeeded"})
    assert result.succeeded
    assert result.payment_intent_id == "pi_1"


def test_result_from_requires_action_with_redirect():
    intent = {
        "id": "pi_1",
        "status": "requires_action",
        "next_action": {"type": "redirect_to_url", "redirect_to_url": {"url": "https://hooks.stripe.com/x"}},
    }
    result = result_from_intent(intent)
    assert result.status == REQUIRES_ACTION
    assert result.requires_redirect
    assert result.redirect_url == "https://hooks.stripe.com/x"


def test_result_from_declined_intent_uses_last_error():
    intent = {"id": "pi_1", "status": "requires_payment_method", "last_payment_error": {"message": "Insufficient funds."}}
    result = result_from_intent(intent)
    assert not result.succeeded
    assert result.error == "Insufficient funds."


def test_result_from_declined_intent_without_message():
    result = result_from_intent({"id": "pi_1", "status": "requires_payment_method"})
    assert result.error == DEFAULT_DECLINE_MESSAGE


def test_confirm_payment_uses_intent_id_from_secret(monkeypatch):
    seen = {}

    def fake_confirm(intent_id, **params):
        seen["intent_id"] = intent_id
        seen["params"] = params
        return {"id": intent_id, "status": "succeeded"}

    monkeypatch.setattr(stripe.PaymentIntent, "confirm", fake_confirm)
    result = stripe_client.confirm_payment(
        client_secret="pi_abc_secret_xyz", payment_method="pm_card", return_url="http://testserver/checkout/return"
    )
    assert result.succeeded
    assert seen["intent_id"] == "pi_abc"
    assert seen["params"] == {"payment_method": "pm_card", "return_url": "http://testserver/checkout/return"}


def test_confirm_payment_card_error_is_verbatim(monkeypatch):
    def fake_confirm(intent_id, **params):
        raise stripe.CardError("Your card was declined.", "card", "card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "confirm", fake_confirm)
    result = stripe_client.confirm_payment(client_secret="pi_abc_secret_xyz", payment_method="pm_x", return_url="/r")
    assert result.status == ERROR
    assert "Your card was declined." in result.error
    assert result.payment_intent_id == "pi_abc"


def test_retrieve_payment(monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: {"id": intent_id, "status": "succeeded"})
    assert stripe_client.retrieve_payment("pi_abc").succeeded
