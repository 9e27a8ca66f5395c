"""
Setup script for mnemo.

mnemo is a terminal spaced-repetition scheduler that knows about
prerequisites. It serves three roles:

1. Review queue - cards come up when due and only once their
   prerequisites are resolved
2. Topic tree - cards and readings are organised by subject
3. Incremental reading - source texts are excerpted and promoted into cards

The 'mnemo' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="mnemo-cli",
    version="0.1.0",
    description="Dependency-aware spaced repetition with incremental reading",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["mnemo", "mnemo.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mnemo=mnemo.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition cli incremental-reading",
)
