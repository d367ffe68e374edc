"""Reference background service owning the stored identity."""
from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mnemonic import Mnemonic

from .config import AppConfig
from .messaging import GENERATE_EMAIL, GET_CURRENT_EMAIL
from .storage import LocalStorage

logger = logging.getLogger(__name__)

_SYMBOLS = "!@#$%^&*-_=+?"


@dataclass(slots=True)
class IdentityGenerator:
    """Build disposable identities from BIP-39 words and random digits."""

    config: AppConfig
    _words: tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._words = tuple(Mnemonic("english").wordlist)
        if self.config.password_length < 4:
            raise ValueError("password_length must be at least 4")

    def local_part(self) -> str:
        words = [secrets.choice(self._words) for _ in range(self.config.identity_word_count)]
        return ".".join(words) + str(secrets.randbelow(900) + 100)

    def password(self) -> str:
        alphabet = string.ascii_letters + string.digits + _SYMBOLS
        required = [
            secrets.choice(string.ascii_lowercase),
            secrets.choice(string.ascii_uppercase),
            secrets.choice(string.digits),
            secrets.choice(_SYMBOLS),
        ]
        rest = [secrets.choice(alphabet) for _ in range(self.config.password_length - len(required))]
        chars = required + rest
        secrets.SystemRandom().shuffle(chars)
        return "".join(chars)

    def generate(self) -> Dict[str, Any]:
        username = self.local_part()
        domain = self.config.identity_domain
        return {
            "username": username,
            "domain": domain,
            "fullEmail": f"{username}@{domain}",
            "password": self.password(),
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }


class BackgroundService:
    """Answers popup messages; the only writer of the storage area."""

    def __init__(
        self,
        storage: LocalStorage,
        config: AppConfig,
        generator: Optional[IdentityGenerator] = None,
    ):
        self._storage = storage
        self._config = config
        self._generator = generator or IdentityGenerator(config)

    def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        action = message.get("action")
        if action == GET_CURRENT_EMAIL:
            return {"email": self._storage.get(self._config.identity_key)}
        if action == GENERATE_EMAIL:
            record = self._generator.generate()
            self._storage.set({self._config.identity_key: record})
            logger.info("generated identity %s", record["fullEmail"])
            return {"email": record}
        logger.warning("unknown action from popup: %r", action)
        return {"error": "unknown_action"}


__all__ = ["BackgroundService", "IdentityGenerator"]
