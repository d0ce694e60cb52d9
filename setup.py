import re

from setuptools import find_packages, setup

# Min version :pip3 install -e .
# Test version :pip3 install -e .["test"]

_deps = [
    "networkx>=3.0",
    "matplotlib>=3.7",
    "pytest>=7.2.2",
    "torch>=2.2.0",
]

# some of the values are versioned whereas others aren't.
deps = {b: a for a, b in (re.findall(r"^(([^!=<>~ ]+)(?:[!=<>~ ].*)?$)", x)[0] for x in _deps)}


def deps_list(*pkgs):
    return [deps[pkg] for pkg in pkgs]


extras = dict()
extras["min"] = deps_list(
    "networkx",  # graph export
    "matplotlib",  # graph visualisation
)
# torch is only used to cross-check gradients
extras["test"] = extras["min"] + deps_list("pytest", "torch")

setup(
    name="gradgraph",
    description="Scalar expression graphs with reverse-mode automatic differentiation and graph-rewrite passes",
    version="0.1.0",
    packages=find_packages(include=["gradgraph", "gradgraph.*"]),
    extras_require=extras,
    install_requires=extras["min"],
    python_requires=">=3.10",
)
