[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "solcourse"
version = "0.1.0"
description = "In-process models of small on-chain programs (a counter, user profiles, voting and lamport transfers) and their Borsh account layouts"
requires-python = ">=3.10"
keywords = ["solana", "borsh", "pda", "blockchain", "education"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Education",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["solcourse"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
