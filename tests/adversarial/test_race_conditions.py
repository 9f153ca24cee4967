"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent verification of the same pending registration
commits at most once:
- Exactly one caller receives a token
- Every other caller sees InvalidOrExpiredCode
- Exactly one identity and one profile exist afterwards

Security rationale:
- The code store's atomic match-and-delete admits one caller to COMMITTING
- The credential store's unique email constraint is the second safety net
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.domain.exceptions import EmailExists, InvalidOrExpiredCode
from src.domain.models import Role

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


class TestRaceConditionAttacks:
    """Simulate an attacker replaying the same correct code concurrently."""

    @pytest.mark.parametrize("num_attackers", [2, 10])
    def test_concurrent_verify_exactly_one_commits(
        self,
        orchestrator,
        email_sender,
        credential_store,
        profile_services,
        strong_password,
        end_user_profile,
        num_attackers: int,
    ) -> None:
        orchestrator.register("race@example.com", strong_password, Role.END_USER, end_user_profile)
        code = email_sender.last_code("race@example.com")

        tokens = []
        rejections = []
        lock = threading.Lock()
        barrier = threading.Barrier(num_attackers)

        def attack() -> None:
            barrier.wait()
            try:
                issued = orchestrator.verify_and_commit("race@example.com", code)
            except InvalidOrExpiredCode:
                with lock:
                    rejections.append(True)
            else:
                with lock:
                    tokens.append(issued)

        with ThreadPoolExecutor(max_workers=num_attackers) as executor:
            for future in [executor.submit(attack) for _ in range(num_attackers)]:
                future.result()

        assert len(tokens) == 1, f"{len(tokens)} commits succeeded (expected exactly 1)"
        assert len(rejections) == num_attackers - 1
        assert len(credential_store) == 1
        assert list(profile_services[Role.END_USER].profiles) == [tokens[0].subject_id]

    def test_concurrent_register_and_commit_distinct_emails(
        self, orchestrator, email_sender, credential_store, strong_password, end_user_profile
    ) -> None:
        """Independent registrations do not interfere."""
        emails = [f"user{i}@example.com" for i in range(8)]

        def register_and_commit(email: str) -> str:
            orchestrator.register(email, strong_password, Role.END_USER, end_user_profile)
            return orchestrator.verify_and_commit(email, email_sender.last_code(email)).subject_id

        with ThreadPoolExecutor(max_workers=8) as executor:
            subject_ids = list(executor.map(register_and_commit, emails))

        assert len(set(subject_ids)) == 8
        assert len(credential_store) == 8

    def test_second_pending_registration_loses_to_unique_email(
        self, orchestrator, email_sender, credential_store, profile_services, strong_password, end_user_profile
    ) -> None:
        """
        Two codes for one email both pass verification (entry re-put between
        verifies); the unique constraint lets only the first commit.
        """
        orchestrator.register("twice@example.com", strong_password, Role.END_USER, end_user_profile)
        first = orchestrator.verify_and_commit("twice@example.com", email_sender.last_code("twice@example.com"))

        # Replay a pending entry as if a second register slipped in before the commit
        committed = credential_store.find_by_email("twice@example.com")
        credential_store.delete(first.subject_id)
        orchestrator.register("twice@example.com", strong_password, Role.END_USER, end_user_profile)
        credential_store.create(committed)

        with pytest.raises(EmailExists):
            orchestrator.verify_and_commit("twice@example.com", email_sender.last_code("twice@example.com"))

        assert len(credential_store) == 1
        assert len(profile_services[Role.END_USER].profiles) == 1
