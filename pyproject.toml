[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "linkit"
version = "0.1.0"
description = "Linearizability checking for concurrent histories, with HTML visualization, a state persister and shard configuration helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["linearizability", "distributed-systems", "testing", "sharding", "consistency"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["linkit*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
