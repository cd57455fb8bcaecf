[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "clusteradm"
version = "0.1.0"
description = "Option handling, validation and data building for joining clusters to an Open Cluster Management hub"
requires-python = ">=3.10"
keywords = [
    "kubernetes",
    "open-cluster-management",
    "klusterlet",
    "multicluster",
    "cluster-proxy",
    "kubeconfig",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml>=6.0",
    "cryptography>=41.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.setuptools.packages.find]
include = ["clusteradm*"]

[tool.pytest.ini_options]
addopts = "-ra"
