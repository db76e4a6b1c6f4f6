[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tracekit"
version = "0.1.0"
description = "Span records, trace identifiers and Jaeger and Datadog reporters for timeline tracing"
requires-python = ">=3.10"
dependencies = [
    "msgpack",
]
keywords = ["tracing", "spans", "jaeger", "datadog", "thrift", "w3c", "traceparent"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tracekit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
