from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from config import BuildEnvironment, LibraryIdentity, capture_environment
from tests._fixtures.workspace_builder import (
    FakeJavadoc,
    FakeSigner,
    RecordingRunner,
    RecordingUploader,
    WorkspaceBuilder,
)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide an empty workspace rooted at the pytest tmp_path."""
    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def repository(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    return repo


@pytest.fixture
def identity(repository: Path) -> LibraryIdentity:
    return LibraryIdentity(
        version      = "3.0.0",
        snapshot_url = (repository / "snapshots").as_uri(),
        release_url  = (repository / "releases").as_uri(),
    )


@pytest.fixture
def build_env() -> BuildEnvironment:
    return capture_environment(
        inception_year = "2022",
        now            = datetime(2024, 5, 6, 7, 8),
        java_version   = "17.0.8",
        user           = "tester",
    )


@pytest.fixture
def tool_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def fake_javadoc() -> FakeJavadoc:
    return FakeJavadoc()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def uploader() -> RecordingUploader:
    return RecordingUploader()
