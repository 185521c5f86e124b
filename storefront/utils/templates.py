from fastapi.templating import Jinja2Templates
from storefront.config import STRIPE_PUBLIC_KEY, TEMPLATES_DIR

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["stripe_public_key"] = STRIPE_PUBLIC_KEY


def money(value) -> str:
    """297 -> '$297', 19.5 -> '$19.50'"""
    amount = float(value or 0)
    return f"${amount:,.0f}" if amount.is_integer() else f"${amount:,.2f}"


templates.env.filters["money"] = money
