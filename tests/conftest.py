"""
Pytest configuration and fixtures for factorydata tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from factorydata import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from factorydata import FactoryData, PreloadRegistry, PreloadSettings  # noqa: E402
from factorydata.store import MemoryRecordStore  # noqa: E402
from sample_models import Comment, Post, User  # noqa: E402


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store() -> MemoryRecordStore:
    """Fresh in-memory store for each test."""
    return MemoryRecordStore()


@pytest.fixture
def registry() -> PreloadRegistry:
    return PreloadRegistry()


@pytest.fixture
def factory_data(store, registry) -> FactoryData:
    """Facade over the in-memory store with default settings."""
    return FactoryData(store, registry=registry, settings=PreloadSettings())


@pytest.fixture
def blog_factory_data(factory_data) -> FactoryData:
    """
    Facade with users, posts and comments registered out of dependency order.
    """

    @factory_data.preload("comments", Comment, depends_on=["users", "posts"])
    def comments(data):
        john = factory_data.get("users", "john")
        tour = factory_data.get("posts", "tour")
        data["woohoo"] = {"user_id": john.id, "post_id": tour.id, "comment": "I can't wait!"}

    @factory_data.preload("posts", Post, depends_on="users")
    def posts(data):
        thom = factory_data.get("users", "thom")
        data["tour"] = {
            "user_id": thom.id,
            "title": "Tour!",
            "body": "Radiohead will tour soon.",
        }

    @factory_data.preload("users", User)
    def users(data):
        data["thom"] = {"first_name": "Thom", "last_name": "York"}
        data["john"] = {"first_name": "John", "last_name": "Doe"}

    return factory_data
