[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "buildpak"
version = "0.1.0"
description = "Helpers for writing cloud native buildpacks: layer contribution, SBOM documents, lifecycle writers, environment and file utilities."
requires-python = ">=3.11"
dependencies = [
    "tomli-w",
]
keywords = ["buildpacks", "cnb", "layers", "sbom", "syft", "toml"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["buildpak"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
