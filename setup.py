"""Setup script for the damlmodel archive decoder."""

from setuptools import setup

# Read requirements from requirements.txt
with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [
        line.strip()
        for line in f
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="damlmodel",
    version="0.1.0",
    description="Decoder and type-model extractor for DAML-LF application archives",
    author="damlmodel maintainers",
    packages=["damlmodel", "damlmodel.ir", "damlmodel.generations"],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4", "hypothesis>=6.90"],
        "dev": ["pytest>=7.4", "hypothesis>=6.90", "nox", "ruff", "coverage[toml]"],
    },
    entry_points={
        "console_scripts": [
            "damlmodel=damlmodel.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
