"""
Catalogue de la marketplace (sites et packages).

Le backend renvoie les listes complètes; le filtrage et le tri se font ici:
- seuls les articles actifs sont conservés;
- recherche insensible à la casse, catégories (au moins une), bornes numériques;
- tri: price, -price, da, -da, traffic, -traffic, name.
Un échec backend donne une liste vide (état vide côté page).
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
import logging

from pydantic import ValidationError

from storefront.infra.api_client import ApiClient
from storefront.checkout.models import Package, Site
from . import repository

logger = logging.getLogger(__name__)

SORT_KEYS: Dict[str, Callable[[Any], Any]] = {
    "price": lambda item: _price(item),
    "da": lambda item: getattr(item, "domain_authority", 0) or 0,
    "traffic": lambda item: getattr(item, "monthly_traffic", 0) or 0,
    "name": lambda item: (item.name or "").lower(),
}


def _price(item) -> float:
    return float(item.charge_amount)


def _rows(payload: Any, key: str) -> List[dict]:
    """Accepte une liste brute ou une enveloppe {key: [...]}."""
    if isinstance(payload, dict):
        payload = payload.get(key) or payload.get("items") or []
    return [row for row in (payload or []) if isinstance(row, dict)]


def _parse(rows: Iterable[dict], model):
    items = []
    for row in rows:
        try:
            items.append(model.model_validate(row))
        except ValidationError:
            logger.warning("catalog: entrée %s ignorée (payload invalide) id=%s", model.__name__, row.get("_id") or row.get("id"))
    return items


def _in_range(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _matches(text_fields: Sequence[Optional[str]], search: Optional[str]) -> bool:
    if not search:
        return True
    needle = search.strip().lower()
    return any(needle in (field or "").lower() for field in text_fields)


def _in_categories(category: str, categories: Optional[Sequence[str]]) -> bool:
    wanted = {c.strip().lower() for c in (categories or []) if c and c.strip()}
    return not wanted or (category or "").lower() in wanted


def sort_items(items: List[Any], sort: Optional[str]) -> List[Any]:
    if not sort:
        return items
    reverse = sort.startswith("-")
    key = SORT_KEYS.get(sort.lstrip("-"))
    if key is None:
        logger.warning("catalog: tri inconnu %r ignoré", sort)
        return items
    return sorted(items, key=key, reverse=reverse)


def filter_sites(
    sites: Iterable[Site],
    *,
    search: Optional[str] = None,
    categories: Optional[Sequence[str]] = None,
    min_da: Optional[float] = None,
    max_da: Optional[float] = None,
    min_dr: Optional[float] = None,
    max_dr: Optional[float] = None,
    min_traffic: Optional[int] = None,
    max_traffic: Optional[int] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort: Optional[str] = None,
) -> List[Site]:
    kept = [
        s for s in sites
        if s.is_active
        and _matches((s.name, s.url, s.category), search)
        and _in_categories(s.category, categories)
        and _in_range(s.domain_authority, min_da, max_da)
        and _in_range(s.domain_rating, min_dr, max_dr)
        and _in_range(s.monthly_traffic, min_traffic, max_traffic)
        and _in_range(s.price, min_price, max_price)
    ]
    return sort_items(kept, sort)


def filter_packages(
    packages: Iterable[Package],
    *,
    search: Optional[str] = None,
    categories: Optional[Sequence[str]] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    sort: Optional[str] = None,
) -> List[Package]:
    kept = [
        p for p in packages
        if p.is_active
        and _matches((p.name, p.description, p.category), search)
        and _in_categories(p.category, categories)
        and _in_range(p.discounted_price, min_price, max_price)
    ]
    return sort_items(kept, sort)


def list_sites(api: ApiClient, **filters) -> List[Site]:
    result = repository.list_sites(api)
    if not result.ok:
        return []
    return filter_sites(_parse(_rows(result.data, "sites"), Site), **filters)


def list_packages(api: ApiClient, **filters) -> List[Package]:
    result = repository.list_packages(api)
    if not result.ok:
        return []
    return filter_packages(_parse(_rows(result.data, "packages"), Package), **filters)


def categories_of(items: Iterable[Any]) -> List[str]:
    return sorted({item.category for item in items if item.category})
