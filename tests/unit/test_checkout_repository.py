import json

import httpx

from storefront.checkout import repository
from storefront.checkout import service
from storefront.checkout.models import NOT_FOUND
from storefront.infra.api_client import ApiClient


def _recording_client(seen, body=None, status=200):
    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(status, json=body if body is not None else {"message": "Not found"})

    return ApiClient(base_url="http://backend.test/api/v1", transport=httpx.MockTransport(handler))


def test_site_id_stays_a_single_path_segment():
    seen = []
    init = service.resolve_item(_recording_client(seen, status=404), "../orders/ord-9", None)

    assert init.reason == NOT_FOUND
    assert len(seen) == 1
    assert seen[0].url.raw_path == b"/api/v1/sites/..%2Forders%2Ford-9"


def test_package_and_order_ids_are_escaped():
    seen = []
    api = _recording_client(seen, status=404)
    repository.get_package(api, "p1?admin=1")
    repository.get_order(api, "../users/u1")
    repository.get_balance(api, "u 1/../x")

    assert [r.url.raw_path for r in seen] == [
        b"/api/v1/packages/p1%3Fadmin%3D1",
        b"/api/v1/orders/..%2Fusers%2Fu1",
        b"/api/v1/users/balance/u%201%2F..%2Fx",
    ]
    assert all(r.url.query == b"" for r in seen)


def test_deduct_balance_posts_user_and_amount():
    seen = []
    api = _recording_client(seen, body={"success": True, "data": {"balance": 3}})
    result = repository.deduct_balance(api, "user-1", 297)

    assert result.ok
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v1/users/deduct-balance"
    assert json.loads(seen[0].content) == {"userId": "user-1", "amount": 297}
