[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cfresources"
version = "0.1.0"
description = "Lifecycle handlers for Cloudflare DNS records, page rules, rate limits, load balancer pools and Logpush jobs"
requires-python = ">=3.10"
dependencies = []
keywords = ["cloudflare", "dns", "page-rules", "rate-limit", "load-balancer", "logpush", "infrastructure"]
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
    "Topic :: System :: Systems Administration",
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cfresources"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
