"""Pytest configuration and shared fixtures."""

import dataclasses

import pytest

from s3rpm.common.config import LockConfig, PublishConfig
from s3rpm.repos.base import RPM_MAGIC
from s3rpm.sync.orchestrator import SyncOrchestrator

from tests.fakes import FakeBuilder, FakeMerger, FakeSigner, InMemoryObjectStore


@pytest.fixture
def rpm_factory(tmp_path):
    """Create fake RPM files (RPM magic plus a payload)."""
    source_dir = tmp_path / "input"
    source_dir.mkdir()

    def create(name: str, payload: bytes = b"") -> str:
        path = source_dir / name
        path.write_bytes(RPM_MAGIC + (payload or name.encode()))
        return str(path)

    return create


@pytest.fixture
def base_config(tmp_path):
    """Minimal valid publish configuration."""
    return PublishConfig(
        bucket="repo-bucket",
        prefix="el9/x86_64",
        access_key="AKIAEXAMPLE",
        secret_key="secret",
        work_dir=str(tmp_path / "work"),
        lock=LockConfig(enabled=False),
    )


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def builder():
    return FakeBuilder()


@pytest.fixture
def merger():
    return FakeMerger()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def make_orchestrator(base_config, store, builder, merger, signer):
    """Build an orchestrator over the fakes with config overrides."""

    def make(**overrides) -> SyncOrchestrator:
        config = dataclasses.replace(base_config, **overrides)
        return SyncOrchestrator(config, store, builder, merger, signer)

    return make
