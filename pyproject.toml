[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mdbinder"
version = "0.1.0"
description = "Load Markdown books from a SUMMARY.md and order their preprocessors and renderers"
requires-python = ">=3.11"
dependencies = [
    "markdown-it-py",
]
keywords = ["markdown", "book", "documentation", "summary", "preprocessor", "gitignore"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
    "Topic :: Text Processing :: Markup :: Markdown",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mdbinder-nop-preprocessor = "mdbinder.nop_preprocessor:main"
mdbinder-wordcount = "mdbinder.wordcount:main"

[tool.hatch.build.targets.wheel]
packages = ["mdbinder"]

[tool.pytest.ini_options]
addopts = "-ra"
