[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kubeplane"
version = "0.1.0"
description = "Building blocks for collecting Kubernetes control plane metrics: metric specs, entity population, endpoint authentication, probing and HTTP sinks."
requires-python = ">=3.10"
keywords = ["kubernetes", "monitoring", "metrics", "control-plane", "mtls"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["kubeplane"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
