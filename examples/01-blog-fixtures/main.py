"""
Blog Fixtures Example

This example demonstrates the basic preload pattern:
1. Declare preloaders with their dependencies
2. Run them once
3. Look records up by key
4. Clean up

Run: python examples/01-blog-fixtures/main.py
"""

import logging

from pydantic import BaseModel

from factorydata import FactoryData, GroupNeverRunError
from factorydata.store import MemoryRecordStore

# =============================================================================
# Models
# =============================================================================


class User(BaseModel):
    id: int | None = None
    first_name: str
    last_name: str


class Post(BaseModel):
    id: int | None = None
    user_id: int
    title: str
    body: str = ""


# =============================================================================
# Preloaders
# =============================================================================


def register_preloaders(factory_data: FactoryData) -> None:
    # Registered before users on purpose: order comes from depends_on
    @factory_data.preload("posts", Post, depends_on="users")
    def posts(data):
        thom = factory_data.get("users", "thom")
        data["tour"] = {"user_id": thom.id, "title": "Tour!", "body": "Radiohead will tour soon."}

    @factory_data.preload("users", User)
    def users(data):
        data["thom"] = {"first_name": "Thom", "last_name": "York"}
        data["john"] = {"first_name": "John", "last_name": "Doe"}
        data["bob"] = {"first_name": "Bob"}  # invalid: reported, not fatal


# =============================================================================
# Main
# =============================================================================


def main():
    logging.basicConfig(level=logging.INFO)

    store = MemoryRecordStore()
    factory_data = FactoryData(store)
    register_preloaders(factory_data)

    print(f"Users before preload: {store.count(User)}")

    run = factory_data.preload_data()
    print(f"Plan: {run.plan}, success: {run.success}")

    users = factory_data.group("users")
    tour = factory_data.get("posts", "tour")
    print(f"{tour.title!r} by {users('thom').first_name}")

    # Restricted run: posts was not requested, so it counts as never run
    factory_data.delete_preload_data()
    factory_data.preload_data(only=["users"])
    try:
        factory_data.get("posts", "tour")
    except GroupNeverRunError as e:
        print(f"Expected: {e}")

    factory_data.delete_preload_data()
    print(f"Users after cleanup: {store.count(User)}")


if __name__ == "__main__":
    main()
