"""
Test token generation.

Prints 24-hour bearer tokens for the built-in test users, signed with the
configured secret. Usage: ``screenpop-tokens`` or
``python -m screenpop.token_manager``.
"""

from datetime import timedelta
from typing import Dict, Optional

from .config import Settings, get_settings
from .core.auth import TokenService

TEST_USERS: Dict[str, Dict[str, str]] = {
    "admin": {"id": "admin-001", "email": "admin@company.com", "role": "admin"},
    "qa": {"id": "qa-001", "email": "qa@company.com", "role": "qa"},
    "tester": {"id": "tester-001", "email": "tester@company.com", "role": "qa"},
}


def generate_test_tokens(settings: Optional[Settings] = None) -> Dict[str, str]:
    """Issue one token per test user."""
    settings = settings or get_settings()
    token_service = TokenService(
        secret=settings.security.jwt_secret,
        algorithm=settings.security.jwt_algorithm,
        default_ttl=timedelta(hours=settings.security.token_ttl_hours),
    )
    return {name: token_service.issue(**user) for name, user in TEST_USERS.items()}


def main() -> None:
    settings = get_settings()
    tokens = generate_test_tokens(settings)
    print(f"\nTEST TOKENS (expire in {settings.security.token_ttl_hours} hours)\n")
    for name, token in tokens.items():
        print(f"{name.capitalize()} Token:")
        print(f"  {token}\n")


if __name__ == "__main__":
    main()
