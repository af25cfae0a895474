[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "humakit"
version = "0.1.0"
description = "Building blocks for HTTP APIs: RFC 9457 problem errors, JSON and CBOR formats, multipart file forms, and a scripted terminal-recording helper"
requires-python = ">=3.10"
dependencies = [
    "cbor2",
]
keywords = [
    "http",
    "api",
    "rfc9457",
    "problem-details",
    "cbor",
    "json",
    "multipart",
    "asciinema",
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
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
humakit-asciinema-run = "humakit.asciinema:main"

[tool.hatch.build.targets.wheel]
packages = ["humakit"]

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
