"""Pytest configuration and fixtures."""

import sys
from collections.abc import Iterator
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from cms import service as service_module
from cms.config import Settings, get_settings
from cms.models import ContentRecord, Principal, Role
from cms.security import sanitizer, validator
from cms.service import SiteService
from cms.tree import nodes
from cms.tree.nodes import Container, Leaf


class ExplodingLogger:
    """Logger stand-in whose every method raises."""

    def __getattr__(self, name: str):
        def explode(*args: object, **kwargs: object) -> None:
            raise RuntimeError("log sink unavailable")

        return explode


@pytest.fixture(autouse=True)
def fresh_settings_cache() -> Iterator[None]:
    """Drop cached settings so environment tweaks never leak between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def broken_log_sink(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every module logger raise on use."""
    for module in (sanitizer, validator, nodes, service_module):
        monkeypatch.setattr(module, "logger", ExplodingLogger())


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        debug=True,
        session_timeout_minutes=30,
        max_upload_mb=10,
        max_body_length=1_000_000,
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(username="admin", role=Role.ADMINISTRATOR)


@pytest.fixture
def editor() -> Principal:
    return Principal(username="eddie", role=Role.EDITOR)


@pytest.fixture
def author() -> Principal:
    return Principal(username="jane_doe", role=Role.AUTHOR)


@pytest.fixture
def guest() -> Principal:
    return Principal(username="visitor", role=Role.GUEST)


def make_leaf(title: str, created_by: str = "jane_doe", **fields: object) -> Leaf:
    """Build a leaf around a fresh content record."""
    return Leaf(ContentRecord(title=title, created_by=created_by, **fields))


@pytest.fixture
def site() -> Container:
    """Site with one category holding two content items."""
    root = Container.site("Main")
    news = Container.category("News")
    root.add(news)
    news.add(make_leaf("First"))
    news.add(make_leaf("Second"))
    return root


@pytest.fixture
def service(site: Container, settings: Settings) -> SiteService:
    """Service wrapping the sample site."""
    return SiteService(site, settings)
