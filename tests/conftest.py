"""
Test configuration and fixtures for shipwright tests.

Provides shared fixtures for:
- Mock container engine
- Mock build info resolver
- Build request construction
- Environment variable management
"""

from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest

from shipwright.build.models import BuildContext, BuildInfo, BuildRequest, CIContext


@pytest.fixture
def sample_inspect_record() -> Dict[str, Any]:
    """Provide an image inspection record as returned by the engine.

    Returns:
        Dictionary shaped like ``docker image inspect`` output.
    """
    return {
        "Id": "sha256:0123456789abcdef",
        "Size": 52_428_800,
        "Config": {
            "User": "app",
            "WorkingDir": "/srv/app",
            "Env": ["PATH=/usr/local/bin:/usr/bin", "GREETING=hello world"],
            "ExposedPorts": {"8080/tcp": {}},
            "Cmd": ["node", "server.js"],
            "Entrypoint": None,
        },
    }


@pytest.fixture
def mock_engine(sample_inspect_record):
    """Provide mock container engine.

    Returns:
        Mock object with every engine operation as an AsyncMock.
    """
    engine = Mock()
    engine.pull = AsyncMock(return_value=None)
    engine.build = AsyncMock(return_value=None)
    engine.create = AsyncMock(side_effect=lambda tag, name: name)
    engine.export = AsyncMock(return_value=None)
    engine.import_image = AsyncMock(return_value=None)
    engine.inspect = AsyncMock(return_value=sample_inspect_record)
    engine.tag_image = AsyncMock(return_value=None)
    engine.push_tags = AsyncMock(return_value=None)
    engine.remove_container = AsyncMock(return_value=None)
    return engine


@pytest.fixture
def resolved_tags() -> List[str]:
    """Tags the mock resolver returns; override in a test module to change."""
    return ["main"]


@pytest.fixture
def mock_resolver(resolved_tags):
    """Provide mock build info resolver.

    A fresh BuildInfo is returned on every call so pipeline mutations do not
    leak between calls.
    """

    def get_info(working_path, tags):
        return BuildInfo(
            branch="main",
            version="1.2.3",
            build="42",
            slug="abcdef12",
            tag=list(resolved_tags),
            ci=CIContext(pull_request=False, tagged=False),
        )

    resolver = Mock()
    resolver.get_info = AsyncMock(side_effect=get_info)
    resolver.get_context = AsyncMock(
        return_value=BuildContext(branch="main", ci=CIContext(), is_lts=True)
    )
    return resolver


@pytest.fixture
def make_request(tmp_path: Path) -> Callable[..., BuildRequest]:
    """Provide a factory for BuildRequest objects rooted in ``tmp_path``.

    Returns:
        Callable accepting BuildRequest field overrides.
    """

    def factory(**overrides: Any) -> BuildRequest:
        fields: Dict[str, Any] = {
            "repo": "myorg",
            "name": "app",
            "working_path": tmp_path,
            "tags": ["main"],
            "default_info": BuildContext(branch="main", ci=CIContext(), is_lts=True),
        }
        fields.update(overrides)
        return BuildRequest(**fields)

    return factory


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every test from ``tmp_path`` so .buildinfo.json lands there."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def clean_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove CI environment variables that affect build info resolution."""
    for name in (
        "GITHUB_EVENT_NAME",
        "GITHUB_REF",
        "GITHUB_REF_NAME",
        "GITHUB_HEAD_REF",
        "TRAVIS_BRANCH",
        "TRAVIS_PULL_REQUEST",
        "TRAVIS_TAG",
        "CI_COMMIT_REF_NAME",
        "CI_COMMIT_TAG",
        "CI_MERGE_REQUEST_IID",
        "CHANGE_ID",
        "BRANCH_NAME",
        "SHIPWRIGHT_REGISTRY",
        "SHIPWRIGHT_SUDO",
    ):
        monkeypatch.delenv(name, raising=False)
