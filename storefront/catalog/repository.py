from typing import Optional, Dict, Any
from storefront.infra.api_client import ApiClient, ApiResult, call


def list_sites(api: ApiClient, params: Optional[Dict[str, Any]] = None) -> ApiResult:
    return call("catalog.repository.list_sites", api.get, "/sites", params=params)

def list_packages(api: ApiClient, params: Optional[Dict[str, Any]] = None) -> ApiResult:
    return call("catalog.repository.list_packages", api.get, "/packages", params=params)
