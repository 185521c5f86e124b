"""
Schémas du checkout, validés à la frontière réseau (pydantic).

- Site / Package: articles commandables renvoyés par le backend (camelCase ou snake_case).
- CheckoutForm / SiteCheckoutForm: coordonnées acheteur + détails de commande.
- SiteOrderDraft / PackageOrderDraft: payload POST /orders, discriminé par orderType.
- PaymentSession: client secret Stripe d'une tentative de paiement.
- CheckoutContext: état du checkout conservé en session entre l'affichage et la soumission.
- CheckoutInit / CheckoutSubmission: résultats explicites des étapes de l'orchestrateur.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

ItemType = Literal["site", "package"]

PENDING = "pending"
PAID = "paid"

# Moyens de paiement proposés au checkout
CARD = "card"
BALANCE = "balance"

# Raisons d'échec exposées par l'orchestrateur
NO_ITEM = "no_item"
NOT_FOUND = "not_found"
PAYMENT_INIT_FAILED = "payment_init_failed"
INVALID_FORM = "invalid_form"
PROVIDER_FAILED = "provider_failed"
REQUIRES_ACTION = "requires_action"
ORDER_FAILED = "order_failed"
SESSION_EXPIRED = "session_expired"
INSUFFICIENT_BALANCE = "insufficient_balance"
BALANCE_UNAVAILABLE = "balance_unavailable"


def normalize_amount(value: Any) -> Union[int, float]:
    """297.0 -> 297, 19.999 -> 20.0: montants envoyés tels quels au backend."""
    amount = round(float(value or 0), 2)
    return int(amount) if amount.is_integer() else amount


class Site(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    url: str = ""
    category: str = ""
    description: Optional[str] = None
    price: float
    domain_authority: float = Field(0, validation_alias=AliasChoices("domainAuthority", "domain_authority"))
    domain_rating: Optional[float] = Field(None, validation_alias=AliasChoices("domainRating", "domain_rating"))
    monthly_traffic: int = Field(0, validation_alias=AliasChoices("monthlyTraffic", "monthly_traffic"))
    turnaround_days: Optional[int] = Field(None, validation_alias=AliasChoices("turnaroundDays", "turnaround_days"))
    is_active: bool = Field(True, validation_alias=AliasChoices("isActive", "is_active"))
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("imageUrl", "logoUrl", "image_url"))

    item_type: ItemType = "site"

    @property
    def charge_amount(self) -> Union[int, float]:
        return normalize_amount(self.price)


class Package(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    description: str = ""
    category: str = ""
    price: float = 0
    discounted_price: float = Field(validation_alias=AliasChoices("discounted_price", "discountedPrice"))
    features: List[str] = Field(default_factory=list)
    is_active: bool = Field(True, validation_alias=AliasChoices("isActive", "is_active"))
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("imageUrl", "image_url"))

    item_type: ItemType = "package"

    @property
    def charge_amount(self) -> Union[int, float]:
        """Un package est toujours facturé à son prix remisé."""
        return normalize_amount(self.discounted_price)

    @property
    def discount_percentage(self) -> int:
        if self.price <= 0:
            return 0
        return round((self.price - self.discounted_price) / self.price * 100)


OrderableItem = Union[Site, Package]


class CheckoutForm(BaseModel):
    """Champs du formulaire. Accepte les noms du front (name, email, targetUrl...)."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    customer_name: str = Field(min_length=1, validation_alias=AliasChoices("customer_name", "customerName", "name"))
    customer_email: EmailStr = Field(validation_alias=AliasChoices("customer_email", "customerEmail", "email"))
    target_url: Optional[str] = Field(None, validation_alias=AliasChoices("target_url", "targetUrl"))
    article_topic: Optional[str] = Field(None, validation_alias=AliasChoices("article_topic", "articleTopic"))
    article_title: Optional[str] = Field(None, validation_alias=AliasChoices("article_title", "articleTitle"))
    anchor_text: Optional[str] = Field(None, validation_alias=AliasChoices("anchor_text", "anchorText"))
    keywords: Optional[str] = None
    special_instructions: Optional[str] = Field(
        None, validation_alias=AliasChoices("special_instructions", "specialInstructions")
    )

    @field_validator(
        "target_url", "article_topic", "article_title", "anchor_text", "keywords", "special_instructions",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("target_url")
    @classmethod
    def _url_like_input(cls, v: Optional[str]) -> Optional[str]:
        # Même contrôle qu'un <input type="url">: schéma + hôte
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid URL")
        return v


class SiteCheckoutForm(CheckoutForm):
    target_url: str = Field(validation_alias=AliasChoices("target_url", "targetUrl"))


def form_model_for(item_type: ItemType):
    return SiteCheckoutForm if item_type == "site" else CheckoutForm


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """{champ: message} à partir d'une ValidationError pydantic."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "form"
        if err.get("type") in ("missing", "string_too_short") or err.get("input") is None:
            message = "This field is required"
        else:
            message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        errors.setdefault(field, message)
    return errors


class _Draft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    customer_name: str
    customer_email: str
    total_amount: Union[int, float]
    stripe_payment_intent_id: Optional[str] = None
    payment_method: str = CARD
    payment_status: str = PENDING
    status: str = PENDING
    article_topic: Optional[str] = None
    article_title: Optional[str] = None
    anchor_text: Optional[str] = None
    keywords: Optional[str] = None
    special_instructions: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SiteOrderDraft(_Draft):
    order_type: Literal["site"] = "site"
    site_id: str
    target_url: str


class PackageOrderDraft(_Draft):
    order_type: Literal["package"] = "package"
    package_id: str
    target_url: Optional[str] = None


OrderDraft = Annotated[Union[SiteOrderDraft, PackageOrderDraft], Field(discriminator="order_type")]


class PaymentSession(BaseModel):
    client_secret: str = Field(validation_alias=AliasChoices("clientSecret", "client_secret"))

    @property
    def payment_intent_id(self) -> str:
        return payment_intent_id_from_secret(self.client_secret)


def payment_intent_id_from_secret(client_secret: str) -> str:
    """'pi_123_secret_abc' -> 'pi_123'."""
    return (client_secret or "").split("_secret_")[0]


class CheckoutContext(BaseModel):
    item_type: ItemType
    item_id: str
    item_name: str = ""
    amount: Union[int, float]
    client_secret: str

    @property
    def payment_intent_id(self) -> str:
        return payment_intent_id_from_secret(self.client_secret)


class CheckoutInit:
    def __init__(
        self,
        success: bool,
        item: Optional[OrderableItem] = None,
        payment_session: Optional[PaymentSession] = None,
        error: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.success = success
        self.item = item
        self.payment_session = payment_session
        self.error = error
        self.reason = reason

    @property
    def item_type(self) -> Optional[str]:
        return self.item.item_type if self.item else None

    @property
    def amount(self):
        return self.item.charge_amount if self.item else None

    def context(self) -> CheckoutContext:
        return CheckoutContext(
            item_type=self.item.item_type,
            item_id=self.item.id,
            item_name=self.item.name,
            amount=self.item.charge_amount,
            client_secret=self.payment_session.client_secret,
        )


class CheckoutSubmission:
    def __init__(
        self,
        success: bool,
        order_id: Optional[str] = None,
        redirect_url: Optional[str] = None,
        error: Optional[str] = None,
        reason: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
        recoverable: bool = False,
        form: Optional[CheckoutForm] = None,
        payment_intent_id: Optional[str] = None,
    ):
        self.success = success
        self.order_id = order_id
        self.redirect_url = redirect_url
        self.error = error
        self.reason = reason
        self.field_errors = field_errors or {}
        self.recoverable = recoverable
        self.form = form
        self.payment_intent_id = payment_intent_id
