"""
Provider claims and the name derivation chain.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt
from loguru import logger

from auth0_bridge.models.user import SENTINEL_FIRST_NAME

LOG_PREFIX = "[Auth0Claims]"

# Profile fields an unverified ID token may fill in when userinfo omits them
_ENRICHABLE_FIELDS = ("name", "given_name", "family_name", "nickname", "picture")


@dataclass
class ProviderClaims:
    """Identity asserted by Auth0 for one callback. Never persisted as-is."""

    subject: str
    email: str
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    nickname: Optional[str] = None
    avatar_url: Optional[str] = None
    access_token: Optional[str] = field(default=None, repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    id_token: Optional[str] = field(default=None, repr=False)
    token_response: Dict[str, Any] = field(default_factory=dict, repr=False)
    raw_userinfo: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def email_local_part(self) -> str:
        return self.email.split("@", 1)[0] if self.email else ""

    @classmethod
    def from_provider_response(
        cls,
        token_response: Dict[str, Any],
        userinfo: Dict[str, Any],
    ) -> "ProviderClaims":
        """
        Build claims from the token endpoint body and the userinfo profile.

        `sub` and `email` come from userinfo only. The ID token is decoded without
        signature verification and may only fill missing display fields.
        """
        id_token = token_response.get("id_token")
        profile = dict(userinfo)
        for key, value in unverified_id_token_claims(id_token).items():
            if key in _ENRICHABLE_FIELDS and not profile.get(key):
                profile[key] = value

        return cls(
            subject=str(userinfo.get("sub") or ""),
            email=str(userinfo.get("email") or ""),
            name=profile.get("name"),
            given_name=profile.get("given_name"),
            family_name=profile.get("family_name"),
            nickname=profile.get("nickname"),
            avatar_url=profile.get("picture"),
            access_token=token_response.get("access_token"),
            refresh_token=token_response.get("refresh_token"),
            id_token=id_token,
            token_response=token_response,
            raw_userinfo=userinfo,
        )


def unverified_id_token_claims(id_token: Optional[str]) -> Dict[str, Any]:
    """
    Decode an ID token payload WITHOUT verifying its signature.

    Display enrichment only: the result must never drive an authorization decision.
    """
    if not id_token:
        return {}
    try:
        return jwt.get_unverified_claims(id_token)
    except JWTError as e:
        logger.warning(f"{LOG_PREFIX} Could not decode id_token payload: {e}")
        return {}


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split on the first space after trimming: 'Ada King Lovelace' -> ('Ada', 'King Lovelace')."""
    parts = full_name.strip().split(" ", 1)
    return parts[0], parts[1] if len(parts) > 1 else ""


def derive_name(claims: ProviderClaims, default_first_name: str = SENTINEL_FIRST_NAME) -> Tuple[str, str]:
    """
    Best-effort (first_name, last_name) from the claims.

    Precedence: given/family name, then `name`, then `nickname`, then the email
    local part, then `default_first_name` with an empty last name. Downstream
    code treats a first name equal to "User" as "no real name known yet".
    """
    first_name = ""
    last_name = ""

    if claims.given_name:
        first_name = claims.given_name
        last_name = claims.family_name or ""
    elif claims.name and claims.name.strip():
        first_name, last_name = split_full_name(claims.name)
    elif claims.nickname:
        if " " in claims.nickname:
            first_name, last_name = split_full_name(claims.nickname)
        else:
            first_name = claims.nickname
    elif claims.email:
        prefix = claims.email_local_part
        if "." in prefix:
            first_name, last_name = split_full_name(prefix.replace(".", " "))
        elif "_" in prefix:
            first_name, last_name = split_full_name(prefix.replace("_", " "))
        else:
            first_name = prefix

    if not first_name:
        first_name = default_first_name
    return first_name, last_name
