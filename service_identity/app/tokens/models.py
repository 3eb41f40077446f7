"""
Identity token data models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class IdentityClaims:
    """Verified identity taken from the provider responses."""
    subject_id: str
    email: str
    # None when the membership fetch did not succeed
    group_ids: Optional[List[str]] = None

    def custom_claims(self) -> Dict[str, Any]:
        """Claims added to the token payload next to the registered ones."""
        claims: Dict[str, Any] = {
            "email": self.email,
            "id": self.subject_id,
        }
        if self.group_ids is not None:
            claims["guilds"] = list(self.group_ids)
        return claims


class TokenResponse(BaseModel):
    """Callback response carrying the signed identity token."""
    id_token: str


class DiscoveryDocument(BaseModel):
    """Published verification keys."""
    keys: List[Dict[str, Any]]
