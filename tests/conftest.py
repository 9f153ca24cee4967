"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory stores with a controllable clock
- A recording email sender that captures issued codes
- Pre-wired RegistrationOrchestrator and AuthenticationService
- Valid registration inputs per role

bcrypt costs are set to the minimum (4) so the suites stay fast.
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.adapters.memory import InMemoryCodeStore, InMemoryCredentialStore, InMemoryProfileService
from src.adapters.tokens import JwtTokenIssuer
from src.domain.authentication import AuthenticationService
from src.domain.models import CodePurpose, Role
from src.domain.registration import RegistrationOrchestrator

TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef-0123456789"
LOW_COST = 4


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEmailSender:
    """EmailSender that keeps every (email, code, purpose) it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, CodePurpose]] = []

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        self.sent.append((email, code, purpose))

    def last_code(self, email: str, purpose: CodePurpose = CodePurpose.REGISTER) -> str:
        for sent_email, code, sent_purpose in reversed(self.sent):
            if sent_email == email and sent_purpose is purpose:
                return code
        raise AssertionError(f"No {purpose.value} code sent to {email}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def code_store(clock: FakeClock) -> InMemoryCodeStore:
    return InMemoryCodeStore(clock=clock)


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def profile_services() -> dict[Role, InMemoryProfileService]:
    return {
        Role.END_USER: InMemoryProfileService(Role.END_USER),
        Role.PARTNER: InMemoryProfileService(Role.PARTNER),
    }


@pytest.fixture
def signing_key() -> str:
    return TEST_SIGNING_KEY


@pytest.fixture
def token_issuer(signing_key: str) -> JwtTokenIssuer:
    return JwtTokenIssuer(signing_key, subject_ttl_seconds=3600, scoped_ttl_seconds=900)


@pytest.fixture
def orchestrator(
    credential_store: InMemoryCredentialStore,
    code_store: InMemoryCodeStore,
    email_sender: RecordingEmailSender,
    profile_services: dict[Role, InMemoryProfileService],
    token_issuer: JwtTokenIssuer,
) -> RegistrationOrchestrator:
    """Orchestrator wired to in-memory adapters."""
    return RegistrationOrchestrator(
        credential_store=credential_store,
        code_store=code_store,
        email_sender=email_sender,
        profile_services=profile_services,
        token_issuer=token_issuer,
        code_ttl_seconds=300,
        password_cost=LOW_COST,
        code_hash_cost=LOW_COST,
    )


@pytest.fixture
def auth_service(
    credential_store: InMemoryCredentialStore,
    code_store: InMemoryCodeStore,
    email_sender: RecordingEmailSender,
    token_issuer: JwtTokenIssuer,
) -> AuthenticationService:
    """Authentication service sharing stores with the orchestrator fixture."""
    return AuthenticationService(
        credential_store=credential_store,
        code_store=code_store,
        email_sender=email_sender,
        token_issuer=token_issuer,
        code_ttl_seconds=300,
        password_cost=LOW_COST,
        code_hash_cost=LOW_COST,
    )


@pytest.fixture
def strong_password() -> str:
    return "Str0ng!Pass"


@pytest.fixture
def end_user_profile() -> dict[str, Any]:
    return {"full_name": "Alice Example", "phone": "9876543210"}


@pytest.fixture
def partner_profile() -> dict[str, Any]:
    return {
        "full_name": "Ravi Kumar",
        "mobile_number": "+919812345678",
        "date_of_birth": "1990-04-12",
        "address": "12 MG Road, Bengaluru",
        "vehicle_type": "Mini-Truck",
        "registration_number": "ka 01 ab 1234",
        "account_holder_name": "Ravi Kumar",
        "account_number": "123456789012",
        "ifsc_code": "hdfc0001234",
    }


@pytest.fixture
def register_user(
    orchestrator: RegistrationOrchestrator,
    email_sender: RecordingEmailSender,
    strong_password: str,
    end_user_profile: dict[str, Any],
) -> Callable[[str], Any]:
    """Run a full end-user registration and return the IssuedToken."""

    def _register(email: str) -> Any:
        orchestrator.register(email, strong_password, Role.END_USER, end_user_profile)
        return orchestrator.verify_and_commit(email, email_sender.last_code(email))

    return _register


@pytest.fixture
def register_partner(
    orchestrator: RegistrationOrchestrator,
    email_sender: RecordingEmailSender,
    partner_profile: dict[str, Any],
) -> Callable[[str], Any]:
    """Run a full partner registration and return the IssuedToken."""

    def _register(email: str) -> Any:
        orchestrator.register(email, None, Role.PARTNER, partner_profile)
        return orchestrator.verify_and_commit(email, email_sender.last_code(email))

    return _register
