from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class Session:
    """
    Explicit per-user context handed to KeyStore and DecryptionPipeline.

    `scope` namespaces the durable key record, so two users of one device
    never see each other's keys.
    """
    user_id: str
    access_token: Optional[str] = field(default=None, repr=False)

    @property
    def scope(self) -> str:
        return f"user:{self.user_id}"

    def auth_headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}
