from typing import Union
from storefront.infra.api_client import ApiClient, ApiResult, call


# module storefront.funds.repository
def create_intent(api: ApiClient, user_id: str, amount: Union[int, float]) -> ApiResult:
    """POST /payments/add-funds/create-intent {userId, amount} -> {clientSecret, paymentIntentId}"""
    return call(
        "funds.repository.create_intent",
        api.post,
        "/payments/add-funds/create-intent",
        {"userId": user_id, "amount": amount},
    )

def confirm(api: ApiClient, payment_intent_id: str) -> ApiResult:
    """POST /payments/add-funds/confirm {paymentIntentId}"""
    return call(
        "funds.repository.confirm",
        api.post,
        "/payments/add-funds/confirm",
        {"paymentIntentId": payment_intent_id},
    )
