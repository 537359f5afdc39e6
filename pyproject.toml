[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "gatos"
version = "0.1.0"
description = "In-memory disks, an inode file system with Unix-style permissions, user and group tables, and a shell"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "inode", "disk-cache", "shell", "permissions", "simulation", "teaching"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gatos = "gatos.commands:main"

[tool.setuptools.packages.find]
include = ["gatos*"]

[tool.pytest.ini_options]
addopts = "-ra"
