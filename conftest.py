import os

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--skip-slow",
        action="store_true",
        default=os.getenv("TS_SKIP_SLOW", "") not in ("", "0", "false"),
        help="Skip pairing-heavy tests marked 'slow' (env: TS_SKIP_SLOW)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items) -> None:
    if not config.getoption("--skip-slow"):
        return
    skip = pytest.mark.skip(reason="--skip-slow given")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)
