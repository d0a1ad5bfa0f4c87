"""
Configuration for Kora Gate clients.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .keys import AgentKeyMaterial, parse_agent_secret

DEFAULT_API_URL = "https://api.koraprotocol.com"


@dataclass
class KoraCredentials:
    """Agent credentials and endpoint for one mandate."""

    agent_secret: str = field(repr=False)
    api_url: str = DEFAULT_API_URL
    mandate_id: Optional[str] = None
    timeout: float = 30.0

    def __post_init__(self):
        self.api_url = (self.api_url or DEFAULT_API_URL).rstrip("/")

    def key_material(self) -> AgentKeyMaterial:
        """Parse the agent secret. Raises MalformedSecretError."""
        return parse_agent_secret(self.agent_secret)

    @classmethod
    def from_env(cls) -> "KoraCredentials":
        """Create credentials from environment variables."""
        return cls(
            agent_secret=os.environ.get("KORA_AGENT_SECRET", ""),
            api_url=os.environ.get("KORA_API_URL", DEFAULT_API_URL),
            mandate_id=os.environ.get("KORA_MANDATE_ID") or None,
            timeout=float(os.environ.get("KORA_TIMEOUT", "30")),
        )
