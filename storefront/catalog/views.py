# module storefront.catalog.views
"""Catalogue public.
- GET /api/v1/sites: sites actifs filtrés/triés (search, category, minDa/maxDa, minDr/maxDr, minTraffic/maxTraffic, minPrice/maxPrice, sort).
- GET /api/v1/packages: packages actifs filtrés/triés (search, category, minPrice/maxPrice, sort).
- GET /marketplace: page HTML avec liens vers le checkout.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from storefront.infra.api_client import get_api_client
from storefront.utils.security import AuthSession, get_auth_session
from storefront.utils.templates import templates
from storefront.catalog import service as catalog_service

api_router = APIRouter(prefix="/api/v1", tags=["Catalog API"])
web_router = APIRouter(tags=["Catalog Pages"])


def _categories(raw: Optional[List[str]]) -> List[str]:
    # ?category=a&category=b ou ?category=a,b
    return [c for value in (raw or []) for c in value.split(",") if c.strip()]


@api_router.get("/sites")
def list_sites(
    search: Optional[str] = None,
    category: Optional[List[str]] = Query(None),
    min_da: Optional[float] = Query(None, alias="minDa"),
    max_da: Optional[float] = Query(None, alias="maxDa"),
    min_dr: Optional[float] = Query(None, alias="minDr"),
    max_dr: Optional[float] = Query(None, alias="maxDr"),
    min_traffic: Optional[int] = Query(None, alias="minTraffic"),
    max_traffic: Optional[int] = Query(None, alias="maxTraffic"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    sites = catalog_service.list_sites(
        get_api_client(auth),
        search=search,
        categories=_categories(category),
        min_da=min_da,
        max_da=max_da,
        min_dr=min_dr,
        max_dr=max_dr,
        min_traffic=min_traffic,
        max_traffic=max_traffic,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
    )
    return {"items": [s.model_dump(mode="json") for s in sites], "count": len(sites)}


@api_router.get("/packages")
def list_packages(
    search: Optional[str] = None,
    category: Optional[List[str]] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    packages = catalog_service.list_packages(
        get_api_client(auth),
        search=search,
        categories=_categories(category),
        min_price=min_price,
        max_price=max_price,
        sort=sort,
    )
    items = []
    for p in packages:
        row = p.model_dump(mode="json")
        row["discount_percentage"] = p.discount_percentage
        items.append(row)
    return {"items": items, "count": len(items)}


@web_router.get("/marketplace", response_class=HTMLResponse)
def marketplace_page(
    request: Request,
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: Optional[str] = None,
    error: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    api = get_api_client(auth)
    categories = _categories([category] if category else None)
    sites = catalog_service.list_sites(api, search=search, categories=categories, sort=sort)
    packages = catalog_service.list_packages(api, search=search, categories=categories, sort=sort)
    return templates.TemplateResponse(
        request,
        "marketplace.html",
        {
            "sites": sites,
            "packages": packages,
            "categories": catalog_service.categories_of([*sites, *packages]),
            "search": search or "",
            "category": category or "",
            "sort": sort or "",
            "error": error,
            "auth": auth,
        },
    )
