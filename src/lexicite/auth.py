# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Shared-secret authentication for trigger endpoints (webhook + cron).
On first start, missing secrets are generated, persisted in config and
printed to console once.
"""
import hmac
import secrets

from .config import Config
from .errors import AuthError

_SECRETS = ("webhook_secret", "cron_secret")


def bearer_token(header: str | None) -> str:
    if not header:
        return ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def verify_bearer(header: str | None, secret: str) -> bool:
    """True if *header* is ``Bearer <secret>``. An empty secret never matches."""
    if not secret:
        return False
    return hmac.compare_digest(bearer_token(header).encode(), secret.encode())


class SecretAuth:
    def __init__(self, config: Config, generate: bool = True):
        self.config = config
        if generate:
            self._init_secrets()

    def _init_secrets(self):
        generated = {}
        for key in _SECRETS:
            if not getattr(self.config, key):
                value = secrets.token_urlsafe(24)
                setattr(self.config, key, value)
                generated[key] = value
        if not generated:
            return
        try:
            self.config.save()
        except OSError as e:
            print(f"Warning: could not persist generated secrets: {e}")
        self._print_secrets(generated)

    @staticmethod
    def _print_secrets(generated: dict):
        print()
        print("=" * 50)
        print("  TRIGGER SECRETS")
        for key, value in generated.items():
            print(f"  {key}: {value}")
        print("  Send as 'Authorization: Bearer <secret>'")
        print("=" * 50)
        print()

    def require_webhook(self, header: str | None):
        if not verify_bearer(header, self.config.webhook_secret):
            raise AuthError("Unauthorized")

    def require_cron(self, header: str | None):
        if not verify_bearer(header, self.config.cron_secret):
            raise AuthError("Unauthorized")
