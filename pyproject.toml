[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "admm_elastic"
version = "0.1.0"
description = "ADMM-based implicit time integration of elastic solids and cloth, with hard constraints and Anderson acceleration"
requires-python = ">=3.10"
keywords = [
    "physics",
    "simulation",
    "elasticity",
    "admm",
    "anderson acceleration",
    "finite elements",
    "collision",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["admm_elastic"]

[tool.hatch.build.targets.sdist]
include = ["admm_elastic", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
