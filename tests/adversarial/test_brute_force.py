"""
Adversarial tests for code guessing.

Verifies that wrong guesses never unlock a pending registration and that
a correct code issued under one purpose cannot be replayed under another.
"""

import pytest

from src.domain.exceptions import InvalidOrExpiredCode
from src.domain.models import CodeKey, CodePurpose, Role

pytestmark = pytest.mark.adversarial


class TestBruteForceAttacks:
    def test_many_wrong_guesses_commit_nothing(
        self, orchestrator, email_sender, credential_store, code_store, strong_password, end_user_profile
    ) -> None:
        orchestrator.register("victim@example.com", strong_password, Role.END_USER, end_user_profile)
        code = email_sender.last_code("victim@example.com")
        guesses = [f"{i:06d}" for i in range(50) if f"{i:06d}" != code]

        for guess in guesses:
            with pytest.raises(InvalidOrExpiredCode):
                orchestrator.verify_and_commit("victim@example.com", guess)

        assert len(credential_store) == 0
        assert CodeKey("victim@example.com", CodePurpose.REGISTER) in code_store

    def test_guessing_after_expiry_is_pointless(
        self, orchestrator, email_sender, clock, strong_password, end_user_profile
    ) -> None:
        orchestrator.register("victim@example.com", strong_password, Role.END_USER, end_user_profile)
        code = email_sender.last_code("victim@example.com")
        clock.advance(300)

        with pytest.raises(InvalidOrExpiredCode):
            orchestrator.verify_and_commit("victim@example.com", code)

    def test_code_for_one_email_does_not_verify_another(
        self, orchestrator, email_sender, strong_password, end_user_profile
    ) -> None:
        orchestrator.register("attacker@example.com", strong_password, Role.END_USER, end_user_profile)
        orchestrator.register("victim@example.com", strong_password, Role.END_USER, end_user_profile)
        attacker_code = email_sender.last_code("attacker@example.com")
        victim_code = email_sender.last_code("victim@example.com")

        if attacker_code != victim_code:
            with pytest.raises(InvalidOrExpiredCode):
                orchestrator.verify_and_commit("victim@example.com", attacker_code)

    def test_login_code_cannot_reset_password(
        self, auth_service, register_user, email_sender
    ) -> None:
        """A code issued for one purpose is useless for another."""
        register_user("victim@example.com")
        auth_service.request_password_reset("victim@example.com")
        reset_code = email_sender.last_code("victim@example.com", CodePurpose.PASSWORD_RESET)

        with pytest.raises(InvalidOrExpiredCode):
            auth_service.verify_login_code("victim@example.com", reset_code)
