[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "notifykit"
version = "0.1.0"
description = "Send one subject and message to many notification services at once."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = [
    "notifications",
    "messaging",
    "webhooks",
    "email",
    "smtp",
    "chat",
    "alerts",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications",
    "Topic :: Communications :: Email",
    "Topic :: Communications :: Chat",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["notifykit"]

[tool.hatch.build.targets.sdist]
include = [
    "notifykit",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
