[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tradeledger"
version = "0.1.0"
description = "Trade ledger for Hyperliquid fills: builder attribution, taint detection and competition leaderboards over HTTP"
requires-python = ">=3.10"
keywords = [
    "hyperliquid",
    "trading",
    "fills",
    "leaderboard",
    "builder",
    "ledger",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "httpx>=0.25",
    "lz4>=4.0",
    "starlette>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["tradeledger"]

[tool.hatch.build.targets.sdist]
include = ["tradeledger", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
disallow_untyped_defs = true
