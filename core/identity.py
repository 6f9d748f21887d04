"""
Owner identity providers.

Every mutating pipeline operation asks an identity provider for the
current owner; a missing owner is a precondition failure.
"""

import logging
import secrets
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Source of the authenticated owner identity"""

    def get_current_owner(self) -> Optional[str]:
        """Owner id, or None when nobody is signed in"""
        raise NotImplementedError


class StaticIdentity(IdentityProvider):
    """Identity fixed for the lifetime of one controller"""

    def __init__(self, owner_id: Optional[str]):
        self.owner_id = owner_id

    def get_current_owner(self) -> Optional[str]:
        return self.owner_id

    def sign_out(self):
        """Drop the identity; later mutations fail as not authenticated"""
        logger.info(f"Owner {self.owner_id} signed out")
        self.owner_id = None


class TokenIdentityResolver:
    """Maps bearer tokens to owner ids"""

    def __init__(self, tokens: Dict[str, str]):
        """
        Args:
            tokens: Bearer token -> owner id
        """
        self._tokens = dict(tokens)
        if not self._tokens:
            logger.warning("No API tokens configured; every request will be unauthenticated")

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """Owner id for a token, or None if unknown"""
        if not token:
            return None
        for known, owner_id in self._tokens.items():
            if secrets.compare_digest(known, token):
                return owner_id
        return None
