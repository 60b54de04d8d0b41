[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opmrelease"
version = "0.1.0"
description = "Resolve, fetch, verify and unpack release source artifacts, and check release package paths and dependencies."
requires-python = ">=3.10"
dependencies = []
keywords = ["release", "artifact", "cue", "gitops", "reconcile", "tar", "zip"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["opmrelease"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
