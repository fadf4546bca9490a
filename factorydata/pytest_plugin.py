"""
pytest integration for factory data.

Enable in a conftest.py:

    pytest_plugins = ["factorydata.pytest_plugin"]

Then restrict a run to some groups from the command line:

    pytest --factory-data-only=users,posts

and build the facade from the ``factory_data_settings`` fixture:

    @pytest.fixture(scope="session")
    def factory_data(factory_data_settings):
        data = FactoryData(store, settings=factory_data_settings)
        register_preloaders(data)
        data.preload_data()
        yield data
        data.delete_preload_data()
"""

from __future__ import annotations

from typing import Any

import pytest

from .config import PreloadSettings, split_names

OPTION = "--factory-data-only"


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("factorydata", "factory data preloading")
    group.addoption(
        OPTION,
        action="store",
        default=None,
        metavar="GROUPS",
        help="Comma-separated preload groups to run instead of all of them.",
    )


def settings_from_config(config: Any, environ: Any = None) -> PreloadSettings:
    """Settings from the environment, overridden by --factory-data-only."""
    settings = PreloadSettings.from_env(environ)
    only = config.getoption(OPTION, default=None)
    if only:
        settings = settings.model_copy(
            update={
                "preload_all": False,
                "preload_types": split_names(only),
            }
        )
    return settings


@pytest.fixture(scope="session")
def factory_data_settings(pytestconfig: pytest.Config) -> PreloadSettings:
    return settings_from_config(pytestconfig)
