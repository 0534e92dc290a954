"""Model allow-list and premium tier checks."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .config import MODEL_CATALOG
from .errors import ValidationError
from .models import ModelDescriptor

INVALID_MODEL = "invalid model"
PREMIUM_REQUIRED = "premium required"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    kind: Optional[str] = None
    status_code: int = 200

    def raise_for_rejection(self, model_id: str) -> None:
        if self.allowed:
            return
        if self.kind == INVALID_MODEL:
            message = f"Model '{model_id}' is not available"
        else:
            message = f"Model '{model_id}' requires a premium subscription"
        raise ValidationError(message, error=self.kind, status_code=self.status_code)


class ModelAccessPolicy:
    """Stateless lookup against a fixed model catalog."""

    def __init__(self, models: Optional[Iterable[ModelDescriptor]] = None):
        catalog = MODEL_CATALOG if models is None else models
        self._models: Dict[str, ModelDescriptor] = {m.id: m for m in catalog}

    def check_access(self, model_id: str, premium: bool) -> AccessDecision:
        model = self._models.get(model_id)
        if model is None:
            return AccessDecision(False, INVALID_MODEL, 400)
        if model.is_premium and not premium:
            return AccessDecision(False, PREMIUM_REQUIRED, 403)
        return AccessDecision(True)

    def list_models(self, include_premium: bool) -> List[dict]:
        """
        Models for the public listing.

        Without premium access only the free tier is listed, and the
        ``isPremium`` flag is left out.
        """
        if include_premium:
            return [m.model_dump(by_alias=True) for m in self._models.values()]
        return [
            m.model_dump(by_alias=True, exclude={"is_premium"})
            for m in self._models.values()
            if not m.is_premium
        ]


def is_premium_header(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == "true"
