"""In-memory adapters - Development and test implementations."""

from .stores import InMemoryCodeStore, InMemoryCredentialStore, InMemoryProfileService

__all__ = ["InMemoryCodeStore", "InMemoryCredentialStore", "InMemoryProfileService"]
