[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aibscleaner"
version = "1.0.0"
description = "Issue filtering, reporting, fix hints, runtime profiling and benchmark comparison for Go codebases"
requires-python = ">=3.10"
keywords = ["go", "static-analysis", "linter", "performance", "benchmark", "profiling"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
aibscleaner = "aibscleaner.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["aibscleaner"]

[tool.pytest.ini_options]
addopts = "-ra"
