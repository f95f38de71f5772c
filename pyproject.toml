[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pagealloc"
version = "0.1.0"
description = "Physical page allocation with first-fit and best-fit managers, device-tree memory discovery and a kernel-style console formatter"
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "physical memory", "page allocator", "best fit", "first fit", "device tree", "simulation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Operating System Kernels",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pagealloc = "pagealloc.kernel:main"

[tool.hatch.build.targets.wheel]
packages = ["pagealloc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
