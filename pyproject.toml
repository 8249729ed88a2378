[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "upplane"
version = "0.1.0"
description = "User-plane topology, UPF selection and UE IP address pools for a 5G session management function"
requires-python = ">=3.10"
dependencies = []
keywords = ["5g", "smf", "upf", "user-plane", "ip-pool", "pfcp", "topology"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["upplane"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
